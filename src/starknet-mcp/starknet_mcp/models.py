from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class BlockSnapshot:
    block_number: int
    timestamp: int
    transactions: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RawEvent:
    block_number: int
    transaction_hash: str
    keys: List[str]
    data: List[str]


@dataclass(frozen=True)
class EventsPage:
    events: List[RawEvent]
    continuation_token: Optional[str] = None


@dataclass(frozen=True)
class DecodedEvent:
    block_number: int
    transaction_hash: str
    keys: List[str]
    data: List[str]
    event_name: str
    decoded_data: Dict[str, Any]
    estimated_timestamp: int
    estimated_timestamp_iso: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TransactionInfo:
    block_number: int
    transaction_hash: str
    sender_address: str
    contract_address: str
    max_fee: str
    tx_type: str
    timestamp: int


@dataclass(frozen=True)
class ContractActivitySummary:
    contract_address: str
    status: str
    transaction_count: int
    total_fees: str
    avg_fee: str
    unique_senders: int
    blocks_analyzed: int
    current_block: int
    from_block: int
    to_block: int
    transactions: List[TransactionInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EndpointStatus:
    endpoint: str
    ok: bool
    chain_id: Optional[str] = None
    latency_ms: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
