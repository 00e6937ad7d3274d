#!/usr/bin/env python3
"""
Dev helper: post a test contact form submission to a running backend.

Builds a {name, email, message} payload, POSTs it to /api/contact and
prints the HTTP status and JSON response. It only talks to the API; whether
an email is actually sent depends on the backend's provider configuration.

Usage
-----
# Basic: sample submission against localhost:8000
python scripts/send_test_submission.py

# Custom fields
python scripts/send_test_submission.py --name "Jane Roe" --email jane@uni.edu

# Fire several requests to watch the rate limiter kick in
python scripts/send_test_submission.py --repeat 6

# Target a different backend URL
python scripts/send_test_submission.py --url http://staging.example.com

# Print the payload without sending it
python scripts/send_test_submission.py --dry-run

Environment / .env
------------------
CONTACT_API_URL   Default backend base URL (overridden by --url).
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv

_DEFAULT_MESSAGE = (
    "Hello! This is a test message from the contact form. If you receive "
    "this email, the contact form is working."
)


def _build_payload(name: str, email: str, message: str) -> dict:
    return {"name": name, "email": email, "message": message}


def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    retry_after = response.headers.get("retry-after")
    if retry_after:
        print(f"Retry-After: {retry_after}s")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


def main() -> int:
    # scripts/ lives one level below the project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_submission.py",
        description="Send a test contact form submission to the contact API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_submission.py
              python scripts/send_test_submission.py --repeat 6
              python scripts/send_test_submission.py --url http://localhost:8000
        """),
    )
    parser.add_argument(
        "--url",
        default=os.getenv("CONTACT_API_URL", "http://localhost:8000"),
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument("--name", default="John Doe", help='Sender name (default: "John Doe")')
    parser.add_argument(
        "--email",
        default="john.doe@university.edu",
        help="Sender email (default: john.doe@university.edu)",
    )
    parser.add_argument("--message", default=_DEFAULT_MESSAGE, help="Message text")
    parser.add_argument(
        "--repeat",
        type=int,
        default=1,
        metavar="N",
        help="Send the same submission N times (default: 1)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload JSON without sending it.",
    )

    args = parser.parse_args()

    payload = _build_payload(args.name, args.email, args.message)
    endpoint = f"{args.url.rstrip('/')}/api/contact"

    print(f"Endpoint: {endpoint}")
    print(f"Name    : {args.name}")
    print(f"Email   : {args.email}")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2))
        return 0

    exit_code = 0
    with httpx.Client(timeout=30.0) as client:
        for attempt in range(1, max(args.repeat, 1) + 1):
            if args.repeat > 1:
                print(f"\n--- request {attempt}/{args.repeat} ---")
            try:
                response = client.post(endpoint, json=payload)
            except httpx.HTTPError as exc:
                print(f"\n[FAIL] Request error: {exc}", file=sys.stderr)
                print(f"Make sure the backend is running at {args.url}", file=sys.stderr)
                return 1
            _print_response(response)
            if response.status_code != 200:
                exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
