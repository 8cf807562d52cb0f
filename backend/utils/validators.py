"""
Field validation shared by the request handlers and the storage-write hooks.

Every ``validate_*`` function is pure: it returns an error message for the
field, or ``None`` when the value is acceptable. Nothing here raises except
``ensure_valid``, which the storage layer uses to refuse bad rows.
"""
import re
from typing import Dict, Optional

PHONE_RE = re.compile(r"^[6-9]\d{9}$")
VEHICLE_RE = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z]{0,3}[0-9]{4}$", re.IGNORECASE)
LICENSE_RE = re.compile(r"^[A-Z0-9]+$", re.IGNORECASE)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SEPARATORS_RE = re.compile(r"[\s-]")

MIN_PASSWORD_LENGTH = 6


class ValidationFailed(Exception):
    """Raised when a row fails validation at the storage boundary."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


def strip_separators(value: str) -> str:
    return SEPARATORS_RE.sub("", value)


def normalize_vehicle_number(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return strip_separators(value).upper() or None


def normalize_license_number(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.strip() or None


def validate_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return "Phone number is required"
    if not PHONE_RE.fullmatch(phone):
        return "Must be 10 digits starting with 6, 7, 8, or 9"
    return None


def validate_vehicle_number(vehicle_number: Optional[str]) -> Optional[str]:
    if not vehicle_number:
        return None
    if not VEHICLE_RE.fullmatch(strip_separators(vehicle_number)):
        return "Invalid format (e.g., KA01AB1234)"
    return None


def validate_license_number(license_number: Optional[str]) -> Optional[str]:
    if not license_number:
        return None
    clean = strip_separators(license_number)
    if len(clean) < 15 or len(clean) > 16:
        return "Must be 15-16 characters"
    if not LICENSE_RE.fullmatch(clean):
        return "Only letters and numbers allowed"
    return None


def validate_email(email: Optional[str], required: bool = True) -> Optional[str]:
    if not email:
        return "Email is required" if required else None
    if not EMAIL_RE.fullmatch(email):
        return "Invalid email format"
    return None


def validate_password(password: Optional[str]) -> Optional[str]:
    if not password:
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def validate_required(value: Optional[str], label: str) -> Optional[str]:
    if value is None or not str(value).strip():
        return f"{label} is required"
    return None


def _collect(checks: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {field: msg for field, msg in checks.items() if msg}


def driver_errors(
    full_name: Optional[str],
    phone: Optional[str],
    email: Optional[str] = None,
    license_number: Optional[str] = None,
    vehicle_number: Optional[str] = None,
    password: Optional[str] = None,
    creating_login: bool = False,
) -> Dict[str, str]:
    """Errors for a driver record; ``creating_login`` also checks the credentials."""
    checks = {
        "full_name": validate_required(full_name, "Name"),
        "phone": validate_phone(phone),
        "email": validate_email(email, required=creating_login),
        "license_number": validate_license_number(license_number),
        "vehicle_number": validate_vehicle_number(vehicle_number),
    }
    if creating_login:
        checks["password"] = validate_password(password)
    return _collect(checks)


def bin_errors(location: Optional[str], area: Optional[str]) -> Dict[str, str]:
    return _collect({
        "location": validate_required(location, "Location"),
        "area": validate_required(area, "Area"),
    })


def complaint_errors(area: Optional[str], address: Optional[str]) -> Dict[str, str]:
    return _collect({
        "area": validate_required(area, "Area"),
        "address": validate_required(address, "Address"),
    })


def ensure_valid(errors: Dict[str, str]) -> None:
    if errors:
        raise ValidationFailed(errors)
