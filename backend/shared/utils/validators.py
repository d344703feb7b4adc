"""
Shared validators for input sanitization.
"""

import re
from urllib.parse import urlparse
from typing import Optional

from shared.config.constants import PICKUP_CODE_LENGTH, Limits

# Internal hosts that must never appear in stored image URLs (SSRF prevention)
BLOCKED_HOSTS = [
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "10.",
    "192.168.",
    "169.254.",
    "[::1]",
    "metadata.google",
]
BLOCKED_SCHEMES = {"javascript", "data", "file", "ftp", "mailto", "tel"}

_PICKUP_CODE_RE = re.compile(rf"[0-9]{{{PICKUP_CODE_LENGTH}}}")
_PHONE_RE = re.compile(r"^\+?[0-9 ()-]{6,20}$")


def validate_image_url(url: Optional[str]) -> Optional[str]:
    """
    Validate a menu item image URL.

    Returns the stripped URL, or None for empty input.

    Raises:
        ValueError: If the URL is malformed or points at an internal host
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None

    if len(url) > 2048:
        raise ValueError("Image URL too long (max 2048 characters)")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in BLOCKED_SCHEMES or scheme not in ("http", "https"):
        raise ValueError("Only HTTP/HTTPS image URLs are allowed")

    host = parsed.netloc.lower()
    if not host:
        raise ValueError("Image URL has no host")
    if host.startswith("172.") and host.split(".")[1].isdigit() and 16 <= int(host.split(".")[1]) <= 31:
        raise ValueError("Internal image URL not allowed")
    for blocked in BLOCKED_HOSTS:
        if blocked in host:
            raise ValueError("Internal image URL not allowed")

    return url


def is_well_formed_pickup_code(code: Optional[str]) -> bool:
    """True if `code` is exactly PICKUP_CODE_LENGTH ASCII digits."""
    return bool(code) and _PICKUP_CODE_RE.fullmatch(code) is not None


def validate_quantity(quantity: int, min_val: int = 1, max_val: int = Limits.MAX_LINE_QUANTITY) -> int:
    """
    Validate a line quantity.

    Raises:
        ValueError: If quantity is outside [min_val, max_val]
    """
    if quantity < min_val:
        raise ValueError(f"Minimum quantity is {min_val}")
    if quantity > max_val:
        raise ValueError(f"Maximum quantity is {max_val}")
    return quantity


def validate_phone(phone: Optional[str]) -> Optional[str]:
    if phone is None:
        return None
    phone = phone.strip()
    if not phone:
        return None
    if not _PHONE_RE.match(phone):
        raise ValueError("Invalid phone number")
    return phone


def normalize_allergens(allergens: Optional[list[str]]) -> list[str]:
    """Lower-case, strip, de-duplicate and sort allergen labels."""
    if not allergens:
        return []
    return sorted({a.strip().lower() for a in allergens if a and a.strip()})


def sanitize_text(value: Optional[str], max_length: int = Limits.MAX_NOTES_LENGTH) -> Optional[str]:
    """Strip control characters and surrounding whitespace. Empty becomes None."""
    if value is None:
        return None
    value = re.sub(r"[\x00-\x08\x0b-\x1f\x7f]", "", value).strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValueError(f"Text too long (max {max_length} characters)")
    return value
