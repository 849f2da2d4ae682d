from datetime import datetime, timezone
from typing import Any, Dict, Sequence, Tuple

from .felt import normalize_felt, try_parse_u128_hex

UNKNOWN_EVENT = "Unknown Event"

TRANSFER_SELECTOR = "0x99cd8bde557814842a3121e8ddfd433a539b8c9f14bf31ebf108d12e6196e9"
APPROVAL_SELECTOR = "0x1dcde06aabdbca2f80aa51392b345d7549d7757aa855f7e37f5d335ac8243b1"

# selector -> (event name, names of the leading data fields; the last one is a u128 amount)
KNOWN_EVENTS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    TRANSFER_SELECTOR: ("Transfer", ("from", "to", "amount")),
    APPROVAL_SELECTOR: ("Approval", ("owner", "spender", "amount")),
}


def _render_amount(raw: str) -> str:
    parsed = try_parse_u128_hex(raw)
    return raw if parsed is None else str(parsed)


def decode_event(keys: Sequence[Any], data: Sequence[Any]) -> Tuple[str, Dict[str, Any]]:
    """
    Map an event's keys/data to (name, fields). Never raises.
    Dispatch is on keys[0] only; unknown selectors and short data yield ("Unknown Event", {}).
    """
    if not isinstance(keys, (list, tuple)) or not keys:
        return UNKNOWN_EVENT, {}
    if not isinstance(data, (list, tuple)):
        data = ()

    known = KNOWN_EVENTS.get(normalize_felt(keys[0])) if isinstance(keys[0], str) else None
    if known is None:
        return UNKNOWN_EVENT, {}

    name, fields = known
    if len(data) < len(fields) or not all(isinstance(item, str) for item in data[: len(fields)]):
        return UNKNOWN_EVENT, {}

    decoded: Dict[str, Any] = {field: data[idx] for idx, field in enumerate(fields[:-1])}
    decoded[fields[-1]] = _render_amount(data[len(fields) - 1])
    return name, decoded


def estimate_timestamp(block_number: int, from_block: int, to_block: int, from_ts: int, to_ts: int) -> int:
    """
    Linear estimate of a block's timestamp between two reference blocks,
    assuming a uniform block rate. Differences saturate at zero.
    """
    total_diff = max(0, to_block - from_block)
    if total_diff == 0:
        return to_ts
    block_diff = max(0, to_block - block_number)
    time_diff = max(0, to_ts - from_ts)
    return max(0, to_ts - (block_diff * time_diff) // total_diff)


def to_iso(timestamp: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return ""
