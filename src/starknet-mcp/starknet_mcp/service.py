import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional

from .config import Config
from .endpoints import EndpointPool
from .errors import InvalidAddressFormat, InvalidBlockRange, StarknetRpcError
from .events import decode_event, estimate_timestamp, to_iso
from .felt import format_scaled_int, normalize_felt, parse_block_number, same_felt, try_parse_u128_hex
from .models import (
    BlockSnapshot,
    ContractActivitySummary,
    DecodedEvent,
    EndpointStatus,
    RawEvent,
    TransactionInfo,
)
from .rpc_client import RpcClient

logger = logging.getLogger(__name__)

ADDRESS_LENGTH = 66
SAMPLE_SIZE = 10
STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "No Recent Activity"


class StarknetService:
    """Combine configuration, endpoint pool, and RPC client to serve block, event, and activity queries."""

    def __init__(self, config: Config, client: Optional[RpcClient] = None) -> None:
        self.config = config
        if client is None:
            client = RpcClient(
                pool=EndpointPool(config.rpc_endpoints),
                timeout=config.request_timeout,
            )
        self.client = client

    @property
    def pool(self) -> EndpointPool:
        return self.client.pool

    def get_block_number(self) -> int:
        return self.client.get_block_number()

    def get_block_with_txs(self, block_number: Any) -> BlockSnapshot:
        number = parse_block_number(block_number)
        return self.client.get_block_with_txs(number)

    def find_block_by_timestamp(self, target_timestamp: int) -> int:
        """
        Binary search for the block matching a unix timestamp.
        Returns the exact match if one exists, otherwise the first block at or after
        the target, clamped to the latest block. Fetch failures mid-search end the
        search early with the best bound found so far.
        """
        latest = self.client.get_block_number()
        low, high = 0, latest

        while low <= high:
            mid = (low + high) // 2
            try:
                block = self.client.get_block_with_txs(mid)
            except StarknetRpcError as exc:
                logger.warning(
                    "Block search for ts=%d stopped at block %d (%s); returning block %d",
                    target_timestamp, mid, exc, min(low, latest),
                )
                break

            if block.timestamp < target_timestamp:
                low = mid + 1
            elif block.timestamp > target_timestamp:
                if mid == 0:
                    break
                high = mid - 1
            else:
                return mid

        return min(low, latest)

    def get_events(self, contract_address: str, from_block: Any, to_block: Any) -> List[DecodedEvent]:
        start = parse_block_number(from_block, "from_block")
        end = parse_block_number(to_block, "to_block")
        if start > end:
            raise InvalidBlockRange(start, end)

        raw_events = self._fetch_all_events(contract_address, start, end)

        # Two reference fetches bound the cost regardless of how many blocks the events touch.
        to_ts = self.client.get_block_with_txs(end).timestamp
        from_ts = self.client.get_block_with_txs(start).timestamp

        return [self._decode(event, start, end, from_ts, to_ts) for event in raw_events]

    def get_contract_events(
        self,
        contract_address: str,
        from_timestamp: Optional[int] = None,
        to_timestamp: Optional[int] = None,
    ) -> Dict[str, Any]:
        latest = self.client.get_block_number()
        from_block = self.find_block_by_timestamp(from_timestamp) if from_timestamp is not None else 0
        to_block = self.find_block_by_timestamp(to_timestamp) if to_timestamp is not None else latest

        events = self.get_events(contract_address, from_block, to_block)
        return {
            "events": [event.to_dict() for event in events],
            "from_block": from_block,
            "to_block": to_block,
            "total_events": len(events),
        }

    def analyze_contract(
        self,
        contract_address: str,
        from_timestamp: Optional[int] = None,
        to_timestamp: Optional[int] = None,
    ) -> ContractActivitySummary:
        address = self._validate_address(contract_address)

        current_block = self.client.get_block_number()
        if from_timestamp is not None:
            from_block = self.find_block_by_timestamp(from_timestamp)
        else:
            from_block = max(0, current_block - self.config.default_scan_window)
        if to_timestamp is not None:
            to_block = self.find_block_by_timestamp(to_timestamp)
        else:
            to_block = current_block
        if from_block > to_block:
            raise InvalidBlockRange(from_block, to_block)

        blocks_analyzed = to_block - from_block + 1
        logger.info(
            "Analyzing %d blocks (%d..%d) for %s with concurrency %d",
            blocks_analyzed, from_block, to_block, address, self.config.scan_concurrency,
        )

        matches = self._scan_range(range(to_block, from_block - 1, -1), address)

        logger.info("Scan of %s finished: %d matching transactions", address, len(matches))

        if not matches:
            return ContractActivitySummary(
                contract_address=address,
                status=STATUS_INACTIVE,
                transaction_count=0,
                total_fees="0",
                avg_fee="0",
                unique_senders=0,
                blocks_analyzed=blocks_analyzed,
                current_block=current_block,
                from_block=from_block,
                to_block=to_block,
                transactions=[],
            )

        total_fees = 0
        for tx in matches:
            fee = try_parse_u128_hex(tx.max_fee)
            if fee is not None:
                total_fees += fee
        avg_fee = total_fees // len(matches)
        unique_senders = len({normalize_felt(tx.sender_address) for tx in matches})

        return ContractActivitySummary(
            contract_address=address,
            status=STATUS_ACTIVE,
            transaction_count=len(matches),
            total_fees=format_scaled_int(total_fees),
            avg_fee=format_scaled_int(avg_fee),
            unique_senders=unique_senders,
            blocks_analyzed=blocks_analyzed,
            current_block=current_block,
            from_block=from_block,
            to_block=to_block,
            transactions=matches[:SAMPLE_SIZE],
        )

    def check_endpoints(self) -> List[EndpointStatus]:
        statuses: List[EndpointStatus] = []
        for endpoint in self.pool.urls:
            started = time.perf_counter()
            try:
                chain_id = self.client.get_chain_id(endpoint, timeout=self.config.probe_timeout)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Endpoint %s failed health check: %s", endpoint, exc)
                statuses.append(EndpointStatus(endpoint=endpoint, ok=False, error=str(exc)))
                continue
            latency_ms = round((time.perf_counter() - started) * 1e3, 1)
            statuses.append(
                EndpointStatus(endpoint=endpoint, ok=True, chain_id=chain_id, latency_ms=latency_ms)
            )
        return statuses

    def _fetch_all_events(self, contract_address: str, from_block: int, to_block: int) -> List[RawEvent]:
        all_events: List[RawEvent] = []
        token: Optional[str] = None
        page_count = 0
        max_pages = self.config.max_event_pages

        while True:
            page_count += 1
            page = self.client.get_events_page(
                contract_address,
                from_block,
                to_block,
                chunk_size=self.config.event_chunk_size,
                continuation_token=token,
            )
            all_events.extend(page.events)
            logger.debug(
                "Events page %d for %s: %d events (total %d)",
                page_count, contract_address, len(page.events), len(all_events),
            )

            token = page.continuation_token
            if token is None:
                logger.info(
                    "Fetched %d events for %s across %d page(s)", len(all_events), contract_address, page_count
                )
                break
            if page_count >= max_pages:
                logger.warning(
                    "Reached page limit (%d) for %s; returning %d events", max_pages, contract_address, len(all_events)
                )
                break

        return all_events

    def _decode(self, event: RawEvent, from_block: int, to_block: int, from_ts: int, to_ts: int) -> DecodedEvent:
        name, decoded = decode_event(event.keys, event.data)
        estimated = estimate_timestamp(event.block_number, from_block, to_block, from_ts, to_ts)
        return DecodedEvent(
            block_number=event.block_number,
            transaction_hash=event.transaction_hash,
            keys=list(event.keys),
            data=list(event.data),
            event_name=name,
            decoded_data=decoded,
            estimated_timestamp=estimated,
            estimated_timestamp_iso=to_iso(estimated),
        )

    def _scan_range(self, block_numbers: Iterable[int], address: str) -> List[TransactionInfo]:
        numbers = list(block_numbers)

        def scan_block(number: int) -> List[TransactionInfo]:
            return self._match_transactions(self.client.get_block_with_txs(number), address)

        workers = max(1, min(self.config.scan_concurrency, len(numbers)))
        if workers == 1:
            per_block = [scan_block(number) for number in numbers]
        else:
            # map keeps input order and re-raises the first fetch error when results are collected.
            with ThreadPoolExecutor(max_workers=workers) as executor:
                per_block = list(executor.map(scan_block, numbers))

        return [tx for block_matches in per_block for tx in block_matches]

    def _match_transactions(self, block: BlockSnapshot, address: str) -> List[TransactionInfo]:
        matched: List[TransactionInfo] = []
        for tx in block.transactions:
            sender = tx.get("sender_address")
            contract = tx.get("contract_address")
            if not (same_felt(sender, address) or same_felt(contract, address)):
                continue

            tx_hash = tx.get("transaction_hash")
            max_fee = tx.get("max_fee")
            tx_type = tx.get("type")
            matched.append(
                TransactionInfo(
                    block_number=block.block_number,
                    transaction_hash=tx_hash if isinstance(tx_hash, str) else "",
                    sender_address=sender if isinstance(sender, str) else "",
                    contract_address=address,
                    max_fee=max_fee if isinstance(max_fee, str) else "0x0",
                    tx_type=tx_type if isinstance(tx_type, str) else "INVOKE",
                    timestamp=block.timestamp,
                )
            )
        return matched

    def _validate_address(self, address: Any) -> str:
        if not isinstance(address, str) or not address.startswith("0x") or len(address) != ADDRESS_LENGTH:
            raise InvalidAddressFormat(address)
        return address
