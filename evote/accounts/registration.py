"""
Voter registration identifiers.

A registration id is two digits, four capital letters and three digits,
e.g. ``07KQRT512``. It is shown next to the voter's name in admin views.
"""
import re
import secrets
import string

REGISTRATION_ID_PATTERN = re.compile(r"^\d{2}[A-Z]{4}\d{3}$")


def generate_registration_id():
    digits = string.digits
    letters = string.ascii_uppercase
    return "".join(
        [secrets.choice(digits) for _ in range(2)]
        + [secrets.choice(letters) for _ in range(4)]
        + [secrets.choice(digits) for _ in range(3)]
    )


def validate_registration_id(value):
    return bool(value) and REGISTRATION_ID_PATTERN.match(value) is not None


def format_registration_id(value):
    """Group a well-formed id for display: ``07 KQRT 512``."""
    if len(value) == 9:
        return f"{value[:2]} {value[2:6]} {value[6:]}"
    return value
