"""Custom validation utilities."""

import re


def validate_mykad(ic_number: str) -> bool:
    """Validate a Malaysian MyKad number.

    MyKad format: YYMMDD-PB-###G (12 digits with dashes)
    or: YYMMDDPB###G (12 digits without dashes)

    Args:
        ic_number: IC number to validate

    Returns:
        bool: True if valid MyKad format with a plausible birth date
    """
    # Remove dashes and spaces if present
    cleaned = re.sub(r"[\s\-]", "", ic_number)

    # Must be exactly 12 digits
    if not cleaned.isdigit() or len(cleaned) != 12:
        return False

    month, day = int(cleaned[2:4]), int(cleaned[4:6])
    return 1 <= month <= 12 and 1 <= day <= 31


def format_mykad(ic_number: str) -> str:
    """Format MyKad number with dashes.

    Args:
        ic_number: IC number (with or without dashes)

    Returns:
        str: Formatted IC like YYMMDD-PB-###G
    """
    cleaned = re.sub(r"[\s\-]", "", ic_number)
    return f"{cleaned[:6]}-{cleaned[6:8]}-{cleaned[8:]}"


def normalize_ic_passport(value: str) -> str:
    """Canonical form for an IC or passport number.

    MyKad numbers get dashes; anything else is treated as a passport
    number and upper-cased without spaces.
    """
    if validate_mykad(value):
        return format_mykad(value)
    return re.sub(r"\s", "", value).upper()


def validate_malaysian_phone(phone: str) -> bool:
    """Validate Malaysian mobile number.

    Accepted formats:
    - +60123456789 / 60123456789 (international)
    - 0123456789 / 01123456789 (local)
    - 012-3456789 (local with dash)

    Args:
        phone: Phone number to validate

    Returns:
        bool: True if valid Malaysian mobile format
    """
    # Remove spaces, dashes, and parentheses
    cleaned = re.sub(r"[\s\-\(\)]", "", phone)
    cleaned = cleaned.removeprefix("+")

    # International format with 60
    if cleaned.startswith("601"):
        return cleaned.isdigit() and len(cleaned) in (11, 12)

    # Local format starting with 01
    if cleaned.startswith("01"):
        return cleaned.isdigit() and len(cleaned) in (10, 11)

    return False


def normalize_phone(phone: str) -> str:
    """Normalize phone number to the 60XXXXXXXXX format gateways expect.

    Args:
        phone: Phone number in any format

    Returns:
        str: Phone number like 60123456789
    """
    # Remove non-digits
    cleaned = re.sub(r"\D", "", phone)

    # Already international format
    if cleaned.startswith("60"):
        return cleaned

    # Local format starting with 0
    if cleaned.startswith("0"):
        return "6" + cleaned

    return phone  # Return as-is if can't normalize


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data showing only last few characters.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at end

    Returns:
        str: Masked string like '********7890'
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    masked_length = len(data) - visible_chars
    return "*" * masked_length + data[-visible_chars:]
