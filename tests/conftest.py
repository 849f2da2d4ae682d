from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from starknet_mcp.config import Config
from starknet_mcp.endpoints import EndpointPool
from starknet_mcp.rpc_client import RpcClient
from starknet_mcp.service import StarknetService


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, invalid_json: bool = False) -> None:
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


def ok(result: Any) -> FakeResponse:
    return FakeResponse({"jsonrpc": "2.0", "result": result, "id": 1})


def rpc_error(code: int, message: str) -> FakeResponse:
    return FakeResponse({"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": 1})


class FakeSession:
    """Stands in for requests.Session; routes each POST to a handler(url, payload)."""

    def __init__(self, handler: Callable[[str, Dict[str, Any]], FakeResponse]) -> None:
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, json: Optional[Dict[str, Any]] = None, timeout: Any = None) -> FakeResponse:
        self.calls.append({"url": url, "payload": json, "timeout": timeout})
        return self.handler(url, json)

    def methods(self) -> List[str]:
        return [call["payload"]["method"] for call in self.calls]


class FakeChain:
    """In-memory Starknet node: block timestamps, per-block transactions, and event pages."""

    def __init__(
        self,
        timestamps: List[int],
        transactions: Optional[Dict[int, List[Dict[str, Any]]]] = None,
        event_pages: Optional[List[Dict[str, Any]]] = None,
        endless_events: bool = False,
        block_number_as_hex: bool = True,
        failing_blocks: Optional[set] = None,
    ) -> None:
        self.timestamps = timestamps
        self.transactions = transactions or {}
        self.event_pages = event_pages or [{"events": []}]
        self.endless_events = endless_events
        self.block_number_as_hex = block_number_as_hex
        self.failing_blocks = failing_blocks or set()
        self.event_requests: List[Dict[str, Any]] = []

    @property
    def latest(self) -> int:
        return len(self.timestamps) - 1

    def __call__(self, url: str, payload: Dict[str, Any]) -> FakeResponse:
        method = payload["method"]
        params = payload["params"]
        if method == "starknet_blockNumber":
            return ok(hex(self.latest) if self.block_number_as_hex else self.latest)
        if method == "starknet_chainId":
            return ok("0x534e5f4d41494e")
        if method == "starknet_getBlockWithTxs":
            number = params[0]["block_number"]
            if number in self.failing_blocks:
                raise requests.ConnectionError(f"block {number} unavailable")
            if number > self.latest:
                return rpc_error(24, "Block not found")
            return ok(
                {
                    "block_number": number,
                    "timestamp": self.timestamps[number],
                    "transactions": self.transactions.get(number, []),
                }
            )
        if method == "starknet_getEvents":
            event_filter = params["filter"]
            self.event_requests.append(event_filter)
            if self.endless_events:
                page_no = len(self.event_requests)
                return ok({"events": [], "continuation_token": f"page-{page_no}"})
            token = event_filter.get("continuation_token")
            index = 0 if token is None else int(token)
            page = dict(self.event_pages[index])
            if index + 1 < len(self.event_pages):
                page["continuation_token"] = str(index + 1)
            return ok(page)
        return rpc_error(-32601, "Method not found")


def make_service(
    handler: Callable[[str, Dict[str, Any]], FakeResponse],
    endpoints: Optional[List[str]] = None,
    **config_overrides: Any,
) -> StarknetService:
    config = Config(rpc_endpoints=endpoints or ["https://node-a.test"], **config_overrides)
    session = FakeSession(handler)
    client = RpcClient(EndpointPool(config.rpc_endpoints), timeout=config.request_timeout, session=session)
    return StarknetService(config, client=client)


@pytest.fixture
def uniform_chain() -> FakeChain:
    # Block n has timestamp 10 * n; blocks 0..300.
    return FakeChain([10 * n for n in range(301)])
