import re
from typing import Iterable, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Ethereum-style account address
WALLET_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

IMAGE_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif")
MEDIA_CONTENT_TYPES = IMAGE_CONTENT_TYPES + ("image/webp", "video/mp4", "video/quicktime", "video/webm")

# User-facing messages
MSG_EMAIL_LIVE = "Invalid email address."
MSG_EMAIL_SUBMIT = "Please enter a valid email address."
MSG_WALLET = "Please enter a valid wallet address."
MSG_IMAGE_TYPES = "Only JPG, PNG, and GIF files are allowed."


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value))


def is_valid_wallet_address(value: Optional[str]) -> bool:
    return bool(value) and bool(WALLET_ADDRESS_RE.match(value))


def _mb(n: int) -> str:
    mb = n / (1024 * 1024)
    return f"{int(mb)}MB" if mb == int(mb) else f"{mb:.1f}MB"


def file_size_message(max_bytes: int) -> str:
    return f"File size must be less than {_mb(max_bytes)}."


def file_type_message(accept: Iterable[str]) -> str:
    accept = tuple(accept)
    if accept == IMAGE_CONTENT_TYPES:
        return MSG_IMAGE_TYPES
    return "Unsupported file type. Allowed: " + ", ".join(accept) + "."


def check_file(size: int, content_type: str, max_bytes: int, accept: Iterable[str]) -> Optional[str]:
    """Return an error message for a file that breaks the limits, else None.

    Size is checked first, matching what the form shows when both fail.
    """
    if max_bytes and int(size) > int(max_bytes):
        return file_size_message(max_bytes)
    accept = tuple(accept or ())
    if accept and (content_type or "").lower() not in accept:
        return file_type_message(accept)
    return None


def check_length(value: str, max_length: Optional[int], label: str) -> Optional[str]:
    if max_length and len(value or "") > max_length:
        return f"{label} must be at most {max_length} characters."
    return None
