"""
MCP server exposing Starknet block, event, and contract-activity queries.
"""

import argparse
import logging
from typing import Optional, Union

from mcp.server.fastmcp import FastMCP

from .cli import parse_iso_timestamp
from .config import configure_logging, load_config
from .service import StarknetService

logger = logging.getLogger(__name__)

server = FastMCP(
    name="starknet-mcp",
    instructions="Read-only Starknet data: latest block, blocks by number or time, decoded contract events, and contract activity scans.",
)

_service: Optional[StarknetService] = None


def _get_service() -> StarknetService:
    global _service
    if _service is None:
        cfg = load_config()
        configure_logging(cfg)
        _service = StarknetService(cfg)
    return _service


def _resolve_time(timestamp: Optional[int], date: Optional[str]) -> Optional[int]:
    if timestamp is not None and date is not None:
        raise ValueError("Provide either a unix timestamp or an ISO date, not both.")
    if timestamp is not None:
        return int(timestamp)
    return parse_iso_timestamp(date)


@server.tool(
    name="get_block_number",
    title="Get Latest Block Number",
    description="Return the latest Starknet block number.",
)
def get_block_number() -> dict:
    svc = _get_service()
    return {"block_number": svc.get_block_number()}


@server.tool(
    name="get_block",
    title="Get Block With Transactions",
    description="Fetch a block (number, timestamp, transactions). `block` is decimal or 0x-prefixed hex.",
)
def get_block(block: Union[int, str], include_transactions: bool = True) -> dict:
    svc = _get_service()
    snapshot = svc.get_block_with_txs(block)
    if include_transactions:
        return snapshot.to_dict()
    return {
        "block_number": snapshot.block_number,
        "timestamp": snapshot.timestamp,
        "transaction_count": len(snapshot.transactions),
    }


@server.tool(
    name="find_block_by_timestamp",
    title="Find Block By Time",
    description="Binary-search the block for a unix timestamp or ISO-8601 date.",
)
def find_block_by_timestamp(timestamp: Optional[int] = None, date: Optional[str] = None) -> dict:
    target = _resolve_time(timestamp, date)
    if target is None:
        raise ValueError("timestamp or date is required.")
    svc = _get_service()
    return {"timestamp": target, "block_number": svc.find_block_by_timestamp(target)}


@server.tool(
    name="get_contract_events",
    title="Get Contract Events",
    description="Fetch and decode all events for a contract between two ISO-8601 dates (defaults: genesis to latest).",
)
def get_contract_events(
    address: str,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> dict:
    svc = _get_service()
    return svc.get_contract_events(address, parse_iso_timestamp(from_date), parse_iso_timestamp(to_date))


@server.tool(
    name="analyze_contract",
    title="Analyze Contract Activity",
    description="Scan a block range for transactions sent by or to a contract; returns fees, senders, and a sample. Defaults to the last 1000 blocks.",
)
def analyze_contract(
    address: str,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> dict:
    svc = _get_service()
    summary = svc.analyze_contract(address, parse_iso_timestamp(from_date), parse_iso_timestamp(to_date))
    return summary.to_dict()


@server.tool(
    name="check_endpoints",
    title="Check RPC Endpoints",
    description="Probe every configured Starknet RPC endpoint and report reachability, chain id, and latency.",
)
def check_endpoints() -> dict:
    svc = _get_service()
    return {"endpoints": [status.to_dict() for status in svc.check_endpoints()]}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Starknet MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    # Config errors surface here, before the transport starts.
    svc = _get_service()
    logger.info(
        "Serving Starknet tools over %s with %d RPC endpoints: %s",
        args.transport, len(svc.pool), ", ".join(svc.pool.urls),
    )

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
