import re
from typing import Any, Optional

from .errors import InvalidBlockNumberFormat

U128_MAX = (1 << 128) - 1
FEE_DECIMALS = 18

_HEX_BODY_RE = re.compile(r"^[0-9a-fA-F]+$")


def parse_block_number(value: Any, field: str = "block_number") -> int:
    """Accept 0x-prefixed hex strings, decimal strings, or integer literals."""
    if isinstance(value, bool):
        raise InvalidBlockNumberFormat(value, field)
    if isinstance(value, int):
        ivalue = value
    elif isinstance(value, str):
        candidate = value.strip().lower()
        if candidate.startswith("0x"):
            body = candidate[2:]
            if not _HEX_BODY_RE.match(body):
                raise InvalidBlockNumberFormat(value, field)
            ivalue = int(body, 16)
        elif candidate.isdigit():
            ivalue = int(candidate)
        else:
            raise InvalidBlockNumberFormat(value, field)
    else:
        raise InvalidBlockNumberFormat(value, field)

    if ivalue < 0:
        raise InvalidBlockNumberFormat(value, field)
    return ivalue


def parse_u128_hex(value: Any) -> int:
    """Parse a 0x-prefixed hex string as an unsigned 128-bit integer."""
    if not isinstance(value, str):
        raise ValueError("u128 value must be a hex string.")
    body = value.strip()
    if body[:2].lower() == "0x":
        body = body[2:]
    if not _HEX_BODY_RE.match(body):
        raise ValueError(f"'{value}' is not a valid hex value.")
    parsed = int(body, 16)
    if parsed > U128_MAX:
        raise ValueError(f"'{value}' does not fit in 128 bits.")
    return parsed


def try_parse_u128_hex(value: Any) -> Optional[int]:
    try:
        return parse_u128_hex(value)
    except ValueError:
        return None


def format_scaled_int(value: int, decimals: int = FEE_DECIMALS) -> str:
    if decimals <= 0:
        return str(value)
    negative = value < 0
    s = str(abs(value))
    if len(s) <= decimals:
        s = "0." + "0" * (decimals - len(s)) + s
    else:
        s = s[: len(s) - decimals] + "." + s[len(s) - decimals :]
    s = s.rstrip("0").rstrip(".") or "0"
    if negative:
        s = "-" + s
    return s


def normalize_felt(value: str) -> str:
    """Canonical form of a field-element string: lowercase 0x hex without leading zeros."""
    text = value.strip().lower()
    if text.startswith("0x") and _HEX_BODY_RE.match(text[2:]):
        return hex(int(text[2:], 16))
    return text


def same_felt(left: Any, right: Any) -> bool:
    """Compare two field-element strings by value (0x01 == 0x1), falling back to text."""
    if not isinstance(left, str) or not isinstance(right, str) or not left or not right:
        return False
    return normalize_felt(left) == normalize_felt(right)
