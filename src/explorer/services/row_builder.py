from __future__ import annotations

from typing import Any, Optional

from explorer.core.dto import Receipt
from explorer.core.models import TxStatus

# a Cairo short string fits in one felt: at most 31 bytes
MAX_SHORT_STRING_HEX = 62


def decode_selector(value: Optional[str]) -> Optional[str]:
    """
    Decode a short-string encoded felt ("0x70696e67" -> "ping").
    Anything that is not a printable short string is returned unchanged.
    """
    if not value:
        return None
    if not value.startswith("0x"):
        return value

    digits = value[2:]
    if not digits or len(digits) > MAX_SHORT_STRING_HEX:
        return value
    if len(digits) % 2:
        digits = "0" + digits
    try:
        text = bytes.fromhex(digits).lstrip(b"\x00").decode("ascii")
    except (ValueError, UnicodeDecodeError):
        return value
    if not text or not text.isprintable():
        return value
    return text


def parse_fee(amount: Any) -> int:
    if not amount:
        return 0
    text = str(amount).strip()
    try:
        fee = int(text, 16) if text[:2].lower() == "0x" else int(text, 10)
    except (TypeError, ValueError):
        return 0
    return max(0, fee)


def receipt_status(receipt: Receipt) -> TxStatus:
    if receipt.execution_status == "REVERTED" or receipt.revert_reason:
        return TxStatus.REJECTED
    return TxStatus.ACCEPTED


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive; also tolerates leading-zero padding of hex addresses."""
    if not a or not b:
        return False
    left, right = a.lower(), b.lower()
    if left == right:
        return True
    try:
        return int(left, 16) == int(right, 16)
    except ValueError:
        return False
