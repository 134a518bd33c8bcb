"""Shared validation utilities"""

import re
from typing import Optional


def validate_whatsapp(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a WhatsApp number to E.164 format.

    Args:
        phone: Phone number string in various formats, with or without "+"

    Returns:
        Normalized number (+XXXXXXXXXXX)

    Raises:
        ValueError: If the number has too few or too many digits
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # E.164 allows up to 15 digits; anything under 8 is not a reachable number
    if not 8 <= len(digits) <= 15:
        raise ValueError("WhatsApp number must have between 8 and 15 digits")

    return f"+{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email
