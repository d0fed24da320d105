"""
Field validation rules for user requests.

Validators never raise: each returns the cleaned value (or "" when invalid)
together with every rule violation found, so a handler can report all field
errors of a request in a single response.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .schemas import UserPayload

PHONE_NUMBER_PREFIX = "+62"
PHONE_NUMBER_MIN_LENGTH = 10
PHONE_NUMBER_MAX_LENGTH = 13
FULL_NAME_MIN_LENGTH = 3
FULL_NAME_MAX_LENGTH = 60
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 64

ValidationResult = Tuple[str, List[str]]


@dataclass(frozen=True)
class NewUser:
    full_name: str
    phone_number: str
    password: str


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial profile change; None means the field is left unchanged."""
    full_name: Optional[str] = None
    phone_number: Optional[str] = None


def validate_phone_number(value: Optional[str]) -> ValidationResult:
    phone_number = (value or "").strip()
    errors = []

    if not phone_number.startswith(PHONE_NUMBER_PREFIX):
        errors.append("phone_number should start with +62 (rule 2)")

    if not PHONE_NUMBER_MIN_LENGTH <= len(phone_number) <= PHONE_NUMBER_MAX_LENGTH:
        errors.append("phone_number should be 10 to 13 digits (rule 1)")

    # str.isdigit() also accepts non-ASCII digits such as "٣"
    if any(c not in "0123456789" for c in phone_number[len(PHONE_NUMBER_PREFIX):]):
        errors.append("phone_number should only contain numbers (rule 1)")

    if errors:
        return "", errors
    return phone_number, errors


def validate_full_name(value: Optional[str]) -> ValidationResult:
    full_name = (value or "").strip()
    errors = []

    if not FULL_NAME_MIN_LENGTH <= len(full_name) <= FULL_NAME_MAX_LENGTH:
        errors.append("full_name should be 3 to 60 characters (rule 3)")

    if errors:
        return "", errors
    return full_name, errors


def validate_password(value: Optional[str]) -> ValidationResult:
    """Check a password against all four rules.

    The password is not trimmed. The length rule does not gate the
    character-class rules; every unmet rule gets its own message.
    """
    password = value or ""
    errors = []

    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        errors.append("password should be 6 to 64 characters (rule 4)")
    if not any(c.isupper() for c in password):
        errors.append("password should contain a capital letter (rule 4)")
    if not any(c.isdigit() for c in password):
        errors.append("password should contain a number (rule 4)")
    if not any(not (c.isalpha() or c.isdigit()) for c in password):
        errors.append("password should contain a special character (rule 4)")

    if errors:
        return "", errors
    return password, errors


def convert_register_request(payload: UserPayload) -> Tuple[Optional[NewUser], List[str]]:
    phone_number, phone_number_errors = validate_phone_number(payload.phone_number)
    full_name, full_name_errors = validate_full_name(payload.full_name)
    password, password_errors = validate_password(payload.password)

    errors = phone_number_errors + full_name_errors + password_errors
    if errors:
        return None, errors

    return NewUser(full_name=full_name, phone_number=phone_number, password=password), []


def convert_update_request(payload: UserPayload) -> Tuple[Optional[ProfileUpdate], List[str]]:
    if payload.full_name is None and payload.phone_number is None:
        return None, ["at least one of full_name or phone_number must be provided"]

    errors = []
    phone_number = full_name = None

    if payload.phone_number is not None:
        phone_number, phone_number_errors = validate_phone_number(payload.phone_number)
        errors.extend(phone_number_errors)

    if payload.full_name is not None:
        full_name, full_name_errors = validate_full_name(payload.full_name)
        errors.extend(full_name_errors)

    if errors:
        return None, errors

    return ProfileUpdate(full_name=full_name, phone_number=phone_number), []
