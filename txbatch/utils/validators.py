"""Address, URL and payload validation utilities."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from web3 import Web3

if TYPE_CHECKING:
    from collections.abc import Sequence

_HEX_DATA = re.compile(r"^0x([0-9a-fA-F]{2})*$")


def is_valid_url(url: str) -> bool:
    """Check if a string is a valid HTTP/HTTPS URL."""
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def is_hex_data(value: str) -> bool:
    """Check for 0x-prefixed, even-length hex calldata ("0x" allowed)."""
    return bool(_HEX_DATA.match(value))


def checksum_address(value: str, field_name: str = "address") -> str:
    """Return the EIP-55 checksum form of an address or raise ValueError."""
    if not isinstance(value, str) or not Web3.is_address(value):
        msg = f"{field_name} is not a valid address: {value!r}"
        raise ValueError(msg)
    return Web3.to_checksum_address(value)


def parse_decimal(value: str, field_name: str = "amount") -> Decimal:
    """Parse a finite, non-negative decimal string or raise ValueError."""
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        msg = f"{field_name} must be a decimal number, got {value!r}"
        raise ValueError(msg) from None
    if not parsed.is_finite() or parsed < 0:
        msg = f"{field_name} must be a finite, non-negative number"
        raise ValueError(msg)
    return parsed


def format_validation_errors(errors: Sequence[Any]) -> str:
    """Readable message for pydantic errors. Input values are never echoed."""
    missing = [
        ".".join(str(part) for part in error["loc"] if part != "body")
        for error in errors
        if error.get("type") == "missing"
    ]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)
