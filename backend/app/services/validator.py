"""
Contact submission validator.

validate_submission() is a pure function: it either returns a
ContactSubmission or raises SubmissionValidationError for the FIRST rule
that fails. Rules run in a fixed order and nothing is evaluated after a
failure:

  1. body is a JSON object                        -> MALFORMED_BODY
  2. name, email, message all present             -> MISSING_FIELDS
  3. all three are strings                        -> WRONG_TYPE
  4. each non-empty after trimming                -> EMPTY_NAME / EMPTY_EMAIL / EMPTY_MESSAGE
  5. email has the local@domain.tld shape         -> INVALID_EMAIL_FORMAT
  6. name is at most 100 UTF-16 code units        -> NAME_TOO_LONG
  7. message is at most 2000 UTF-16 code units    -> MESSAGE_TOO_LONG

Trimming and the email check use the browser definition of whitespace
(WHITESPACE), not str.isspace(): U+FEFF is trimmed, U+001C-U+001F are kept.

The email check is deliberately loose (no whitespace or "@" in any of the
three parts, nothing more). Clients depend on exactly this behavior.
"""

import re
from enum import Enum
from typing import Any

from app.models.contact import ContactSubmission

MAX_NAME_LENGTH = 100
MAX_MESSAGE_LENGTH = 2000

# Characters stripped by String.prototype.trim() and matched by \s in browsers.
WHITESPACE = (
    "\t\n\v\f\r "
    "\u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_NOT_SPACE_OR_AT = f"[^@{WHITESPACE}]+"
_EMAIL_PATTERN = re.compile(rf"{_NOT_SPACE_OR_AT}@{_NOT_SPACE_OR_AT}\.{_NOT_SPACE_OR_AT}")

_REQUIRED_FIELDS = ("name", "email", "message")


class ValidationErrorCode(str, Enum):
    MALFORMED_BODY = "malformed_body"
    MISSING_FIELDS = "missing_fields"
    WRONG_TYPE = "wrong_type"
    EMPTY_NAME = "empty_name"
    EMPTY_EMAIL = "empty_email"
    EMPTY_MESSAGE = "empty_message"
    INVALID_EMAIL_FORMAT = "invalid_email_format"
    NAME_TOO_LONG = "name_too_long"
    MESSAGE_TOO_LONG = "message_too_long"


# User-facing text for each rule. Shown verbatim in the 400 response body.
ERROR_MESSAGES = {
    ValidationErrorCode.MALFORMED_BODY: "Invalid request body. Please provide valid JSON data.",
    ValidationErrorCode.MISSING_FIELDS: "All fields are required.",
    ValidationErrorCode.WRONG_TYPE: "All fields must be strings.",
    ValidationErrorCode.EMPTY_NAME: "Name cannot be empty or contain only whitespace.",
    ValidationErrorCode.EMPTY_EMAIL: "Email cannot be empty or contain only whitespace.",
    ValidationErrorCode.EMPTY_MESSAGE: "Message cannot be empty or contain only whitespace.",
    ValidationErrorCode.INVALID_EMAIL_FORMAT: "Please provide a valid email address.",
    ValidationErrorCode.NAME_TOO_LONG: f"Name must be {MAX_NAME_LENGTH} characters or less.",
    ValidationErrorCode.MESSAGE_TOO_LONG: f"Message must be {MAX_MESSAGE_LENGTH} characters or less.",
}


class SubmissionValidationError(Exception):
    """Raised with the code of the first validation rule that failed."""

    def __init__(self, code: ValidationErrorCode):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubmissionValidationError):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)


def _is_missing(value: Any) -> bool:
    """
    Return True for values a JSON client treats as "not filled in":
    null, "", false, 0 and NaN. Empty lists/objects count as present and are
    rejected later by the type rule.
    """
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    return False


def text_length(text: str) -> int:
    """Length in UTF-16 code units, so characters outside the BMP count twice."""
    return len(text.encode("utf-16-le")) // 2


def is_valid_email(email: str) -> bool:
    """Loose local@domain.tld shape check used by rule 5."""
    return _EMAIL_PATTERN.fullmatch(email) is not None


def validate_submission(raw: Any) -> ContactSubmission:
    """
    Validate a raw request body and return the trimmed submission.

    Extra keys in raw are ignored.

    Raises:
        SubmissionValidationError: for the first rule that fails.
    """
    if not isinstance(raw, dict):
        raise SubmissionValidationError(ValidationErrorCode.MALFORMED_BODY)

    values = [raw.get(field) for field in _REQUIRED_FIELDS]

    if any(_is_missing(v) for v in values):
        raise SubmissionValidationError(ValidationErrorCode.MISSING_FIELDS)

    if not all(isinstance(v, str) for v in values):
        raise SubmissionValidationError(ValidationErrorCode.WRONG_TYPE)

    name, email, message = (v.strip(WHITESPACE) for v in values)

    if not name:
        raise SubmissionValidationError(ValidationErrorCode.EMPTY_NAME)
    if not email:
        raise SubmissionValidationError(ValidationErrorCode.EMPTY_EMAIL)
    if not message:
        raise SubmissionValidationError(ValidationErrorCode.EMPTY_MESSAGE)

    if not is_valid_email(email):
        raise SubmissionValidationError(ValidationErrorCode.INVALID_EMAIL_FORMAT)

    if text_length(name) > MAX_NAME_LENGTH:
        raise SubmissionValidationError(ValidationErrorCode.NAME_TOO_LONG)
    if text_length(message) > MAX_MESSAGE_LENGTH:
        raise SubmissionValidationError(ValidationErrorCode.MESSAGE_TOO_LONG)

    return ContactSubmission(name=name, email=email, message=message)
