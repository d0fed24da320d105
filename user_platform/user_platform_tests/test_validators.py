"""Tests for the field validators and request converters."""
import pytest

from user_platform.user_platform.user_service.schemas import UserPayload
from user_platform.user_platform.user_service.validators import (
    NewUser,
    ProfileUpdate,
    convert_register_request,
    convert_update_request,
    validate_full_name,
    validate_password,
    validate_phone_number,
)

PREFIX_MSG = "phone_number should start with +62 (rule 2)"
LENGTH_MSG = "phone_number should be 10 to 13 digits (rule 1)"
DIGITS_MSG = "phone_number should only contain numbers (rule 1)"
FULL_NAME_MSG = "full_name should be 3 to 60 characters (rule 3)"
PASSWORD_MSGS = [
    "password should be 6 to 64 characters (rule 4)",
    "password should contain a capital letter (rule 4)",
    "password should contain a number (rule 4)",
    "password should contain a special character (rule 4)",
]


@pytest.mark.parametrize(
    "value, expected_value, expected_errors",
    [
        ("+628123456789", "+628123456789", []),
        ("  +6281234567  ", "+6281234567", []),
        ("+621234567", "+621234567", []),
        (None, "", [PREFIX_MSG, LENGTH_MSG]),
        ("", "", [PREFIX_MSG, LENGTH_MSG]),
        ("+62812345  ", "", [LENGTH_MSG]),
        ("  +6281234567890", "", [LENGTH_MSG]),
        ("+628123456a", "", [DIGITS_MSG]),
        ("08123456789", "", [PREFIX_MSG]),
        ("0345abc", "", [PREFIX_MSG, LENGTH_MSG, DIGITS_MSG]),
    ],
)
def test_validate_phone_number(value, expected_value, expected_errors):
    assert validate_phone_number(value) == (expected_value, expected_errors)


def test_validate_phone_number_reports_non_digits_once():
    value, errors = validate_phone_number("+62abcdefgh")
    assert value == ""
    assert errors == [DIGITS_MSG]


def test_validate_phone_number_rejects_non_ascii_digits():
    # Arabic-Indic digits are unicode decimals but not valid phone digits
    value, errors = validate_phone_number("+62812345٣٤")
    assert value == ""
    assert errors == [DIGITS_MSG]


@pytest.mark.parametrize(
    "value",
    ["+6281234", "+62812345678901", "+63812345678", "62812345678", "+62 8123456789", "+62-812345678"],
)
def test_validate_phone_number_rejects_everything_outside_the_format(value):
    phone_number, errors = validate_phone_number(value)
    assert phone_number == ""
    assert errors


@pytest.mark.parametrize(
    "value, expected_value, expected_errors",
    [
        ("John Doe", "John Doe", []),
        ("  Ann  ", "Ann", []),
        ("x" * 60, "x" * 60, []),
        (None, "", [FULL_NAME_MSG]),
        ("Jo", "", [FULL_NAME_MSG]),
        ("   Jo   ", "", [FULL_NAME_MSG]),
        ("x" * 61, "", [FULL_NAME_MSG]),
    ],
)
def test_validate_full_name(value, expected_value, expected_errors):
    assert validate_full_name(value) == (expected_value, expected_errors)


def test_validate_password_success():
    assert validate_password("P455w0rd!.") == ("P455w0rd!.", [])


def test_validate_password_empty_reports_every_rule():
    assert validate_password("") == ("", PASSWORD_MSGS)
    assert validate_password(None) == ("", PASSWORD_MSGS)


def test_validate_password_length_does_not_hide_other_rules():
    value, errors = validate_password("a" * 65)
    assert value == ""
    assert errors == PASSWORD_MSGS


def test_validate_password_is_not_trimmed():
    # a space counts as a special character
    assert validate_password(" Passw0rd ") == (" Passw0rd ", [])


@pytest.mark.parametrize(
    "value, missing",
    [
        ("password1!", PASSWORD_MSGS[1]),
        ("Password!", PASSWORD_MSGS[2]),
        ("Password1", PASSWORD_MSGS[3]),
        ("Pa1!", PASSWORD_MSGS[0]),
    ],
)
def test_validate_password_single_rule(value, missing):
    assert validate_password(value) == ("", [missing])


def test_convert_register_request_success():
    payload = UserPayload(full_name=" John Doe ", phone_number="+628123456789", password="P455w0rd!.")
    new_user, errors = convert_register_request(payload)
    assert errors == []
    assert new_user == NewUser(full_name="John Doe", phone_number="+628123456789", password="P455w0rd!.")


def test_convert_register_request_collects_all_errors():
    new_user, errors = convert_register_request(UserPayload(phone_number="0345abc", full_name="Jo"))
    assert new_user is None
    assert errors == [PREFIX_MSG, LENGTH_MSG, DIGITS_MSG, FULL_NAME_MSG] + PASSWORD_MSGS


def test_convert_update_request_only_validates_present_fields():
    profile, errors = convert_update_request(UserPayload(full_name="New Name"))
    assert errors == []
    assert profile == ProfileUpdate(full_name="New Name", phone_number=None)


def test_convert_update_request_collects_errors():
    profile, errors = convert_update_request(UserPayload(full_name="Jo", phone_number="0812"))
    assert profile is None
    assert errors == [PREFIX_MSG, LENGTH_MSG, FULL_NAME_MSG]


def test_convert_update_request_requires_a_field():
    profile, errors = convert_update_request(UserPayload())
    assert profile is None
    assert errors == ["at least one of full_name or phone_number must be provided"]
