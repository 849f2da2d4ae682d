import argparse
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import configure_logging, load_config
from .felt import parse_block_number
from .service import StarknetService


def parse_iso_timestamp(value: Optional[str]) -> Optional[int]:
    """Convert an ISO-8601 date/time to unix seconds. Naive values are taken as UTC."""
    if value is None:
        return None
    candidate = value.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError(f"'{value}' is not a valid ISO-8601 date.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _add_date_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--from-date",
        required=False,
        help="Optional ISO-8601 start time (e.g. 2024-05-01T00:00:00Z).",
    )
    parser.add_argument(
        "--to-date",
        required=False,
        help="Optional ISO-8601 end time. Defaults to the latest block.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query Starknet blocks, events, and contract activity over public JSON-RPC endpoints.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("block-number", help="Fetch the latest block number")

    block_parser = subparsers.add_parser("get-block", help="Fetch a block with its transactions")
    block_parser.add_argument(
        "--block",
        required=True,
        help="Block number: decimal or 0x-prefixed hex.",
    )
    block_parser.add_argument(
        "--summary",
        action="store_true",
        help="Print transaction count instead of full transaction objects.",
    )

    find_parser = subparsers.add_parser("find-block", help="Find the block for a wall-clock time")
    find_group = find_parser.add_mutually_exclusive_group(required=True)
    find_group.add_argument("--timestamp", type=int, help="Unix timestamp in seconds.")
    find_group.add_argument("--date", help="ISO-8601 date/time.")

    events_parser = subparsers.add_parser("events", help="Fetch and decode contract events")
    events_parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed).",
    )
    events_parser.add_argument(
        "--from-block",
        required=False,
        help="Start block (decimal or hex). Overrides --from-date.",
    )
    events_parser.add_argument(
        "--to-block",
        required=False,
        help="End block (decimal or hex). Overrides --to-date.",
    )
    _add_date_range(events_parser)

    analyze_parser = subparsers.add_parser("analyze", help="Scan a block range for a contract's activity")
    analyze_parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed, 66 characters).",
    )
    _add_date_range(analyze_parser)

    subparsers.add_parser("check-endpoints", help="Probe every configured RPC endpoint")

    return parser


def _run(service: StarknetService, args: argparse.Namespace) -> Any:
    if args.command == "block-number":
        return {"block_number": service.get_block_number()}
    if args.command == "get-block":
        block = service.get_block_with_txs(args.block)
        if args.summary:
            return {
                "block_number": block.block_number,
                "timestamp": block.timestamp,
                "transaction_count": len(block.transactions),
            }
        return block.to_dict()
    if args.command == "find-block":
        target = args.timestamp if args.timestamp is not None else parse_iso_timestamp(args.date)
        return {"timestamp": target, "block_number": service.find_block_by_timestamp(target)}
    if args.command == "events":
        if args.from_block is not None or args.to_block is not None:
            from_block = parse_block_number(args.from_block, "from_block") if args.from_block is not None else 0
            to_block = (
                parse_block_number(args.to_block, "to_block") if args.to_block is not None else service.get_block_number()
            )
            events = service.get_events(args.address, from_block, to_block)
            return {
                "events": [event.to_dict() for event in events],
                "from_block": from_block,
                "to_block": to_block,
                "total_events": len(events),
            }
        return service.get_contract_events(
            args.address,
            parse_iso_timestamp(args.from_date),
            parse_iso_timestamp(args.to_date),
        )
    if args.command == "analyze":
        summary = service.analyze_contract(
            args.address,
            parse_iso_timestamp(args.from_date),
            parse_iso_timestamp(args.to_date),
        )
        return summary.to_dict()
    if args.command == "check-endpoints":
        return [status.to_dict() for status in service.check_endpoints()]
    raise ValueError(f"Unknown command '{args.command}'.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        configure_logging(config)
        service = StarknetService(config)
        result = _run(service, args)
        print(json.dumps(result, indent=2))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
