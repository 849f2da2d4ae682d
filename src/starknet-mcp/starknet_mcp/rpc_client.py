import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from .endpoints import EndpointPool
from .errors import AllEndpointsFailed, InvalidEventsResponse, RpcSchemaError
from .felt import parse_block_number
from .models import BlockSnapshot, EventsPage, RawEvent

logger = logging.getLogger(__name__)

REQUEST_ID = 1

Params = Union[List[Any], Dict[str, Any]]


class RpcClient:
    """JSON-RPC 2.0 client for Starknet nodes with round-robin failover across an endpoint pool."""

    def __init__(
        self,
        pool: EndpointPool,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.pool = pool
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers.update({"Content-Type": "application/json"})
        self.session = session

    def call(self, method: str, params: Optional[Params] = None, timeout: Optional[float] = None) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, (list, dict)):
            raise ValueError("params must be a list or an object.")

        deadline = self.timeout if timeout is None else timeout
        attempts = len(self.pool)
        last_error: Optional[Any] = None
        # Each call walks the pool from the cursor it first saw.
        start = self.pool.cursor

        for attempt in range(1, attempts + 1):
            position = start + attempt - 1
            url = self.pool.at(position)
            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": REQUEST_ID,
            }
            try:
                response = self.session.post(url, json=payload, timeout=deadline)
            except requests.RequestException as exc:
                last_error = exc
                logger.warning(
                    "RPC %s failed on %s (attempt %d/%d): %s; rotating endpoint",
                    method, url, attempt, attempts, exc,
                )
                self.pool.advance(position)
                continue

            found, result, detail = self._parse_envelope(response)
            if found:
                return result

            # A reachable endpoint without a usable result counts as a failed attempt.
            last_error = detail
            logger.warning(
                "RPC %s on %s returned no result (attempt %d/%d): %s; rotating endpoint",
                method, url, attempt, attempts, detail,
            )
            self.pool.advance(position)

        raise AllEndpointsFailed(method, attempts, last_error)

    def _parse_envelope(self, response: Any) -> Tuple[bool, Any, Any]:
        try:
            data = response.json()
        except ValueError:
            return False, None, f"HTTP {getattr(response, 'status_code', '?')} with non-JSON body"

        if not isinstance(data, dict):
            return False, None, "non-object JSON-RPC response"

        if "result" in data and data["result"] is not None:
            return True, data["result"], None

        error_obj = data.get("error")
        if isinstance(error_obj, dict):
            code = error_obj.get("code")
            message = error_obj.get("message")
            parts: list[str] = []
            if code is not None:
                parts.append(f"code {code}")
            if message:
                parts.append(str(message))
            return False, None, {"code": code, "message": message, "detail": ": ".join(parts) or "unknown error"}

        return False, None, "missing result"

    def get_block_number(self) -> int:
        result = self.call("starknet_blockNumber", [])
        return parse_block_number(result)

    def get_block_with_txs(self, block_number: int) -> BlockSnapshot:
        method = "starknet_getBlockWithTxs"
        result = self.call(method, [{"block_number": block_number}])
        if not isinstance(result, dict):
            raise RpcSchemaError(method, "expected a block object")

        raw_number = result.get("block_number")
        raw_timestamp = result.get("timestamp")
        raw_transactions = result.get("transactions")

        try:
            number = block_number if raw_number is None else parse_block_number(raw_number)
            timestamp = 0 if raw_timestamp is None else parse_block_number(raw_timestamp, "timestamp")
        except ValueError as exc:
            raise RpcSchemaError(method, str(exc)) from exc

        if raw_transactions is None:
            transactions: List[Dict[str, Any]] = []
        elif isinstance(raw_transactions, list):
            transactions = [tx for tx in raw_transactions if isinstance(tx, dict)]
        else:
            raise RpcSchemaError(method, "transactions must be an array")

        return BlockSnapshot(block_number=number, timestamp=timestamp, transactions=transactions)

    def get_events_page(
        self,
        address: str,
        from_block: int,
        to_block: int,
        chunk_size: int = 1000,
        continuation_token: Optional[str] = None,
    ) -> EventsPage:
        event_filter: Dict[str, Any] = {
            "from_block": {"block_number": from_block},
            "to_block": {"block_number": to_block},
            "address": address,
            "chunk_size": chunk_size,
        }
        if continuation_token is not None:
            event_filter["continuation_token"] = continuation_token

        result = self.call("starknet_getEvents", {"filter": event_filter})
        if not isinstance(result, dict) or not isinstance(result.get("events"), list):
            raise InvalidEventsResponse()

        events = [self._map_event(entry) for entry in result["events"] if isinstance(entry, dict)]
        token = result.get("continuation_token")
        if not isinstance(token, str) or not token:
            token = None
        return EventsPage(events=events, continuation_token=token)

    def get_chain_id(self, endpoint: str, timeout: Optional[float] = None) -> str:
        """Probe one endpoint directly, without failover or cursor movement."""
        payload = {"jsonrpc": "2.0", "method": "starknet_chainId", "params": [], "id": REQUEST_ID}
        response = self.session.post(endpoint, json=payload, timeout=self.timeout if timeout is None else timeout)
        found, result, detail = self._parse_envelope(response)
        if not found:
            if isinstance(detail, dict):
                detail = detail["detail"]
            raise RpcSchemaError("starknet_chainId", str(detail))
        return str(result)

    def _map_event(self, entry: Dict[str, Any]) -> RawEvent:
        try:
            block_number = parse_block_number(entry.get("block_number", 0))
        except ValueError:
            block_number = 0
        tx_hash = entry.get("transaction_hash")
        keys = entry.get("keys") if isinstance(entry.get("keys"), list) else []
        data = entry.get("data") if isinstance(entry.get("data"), list) else []
        return RawEvent(
            block_number=block_number,
            transaction_hash=tx_hash if isinstance(tx_hash, str) else "",
            keys=[key for key in keys if isinstance(key, str)],
            data=[item for item in data if isinstance(item, str)],
        )
