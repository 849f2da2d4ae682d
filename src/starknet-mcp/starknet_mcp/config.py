import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

DEFAULT_RPC_ENDPOINTS: Tuple[str, ...] = (
    "https://rpc.starknet.lava.build",
    "https://starknet-mainnet.g.alchemy.com/v2/demo",
    "https://starknet-mainnet.public.blastapi.io",
    "https://free-rpc.nethermind.io/mainnet-juno",
)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


@dataclass
class Config:
    rpc_endpoints: List[str] = field(default_factory=lambda: list(DEFAULT_RPC_ENDPOINTS))
    request_timeout: float = 10
    probe_timeout: float = 5
    event_chunk_size: int = 1000
    max_event_pages: int = 100
    default_scan_window: int = 1000
    scan_concurrency: int = 4
    log_level: str = "INFO"


def parse_endpoints(raw: Optional[str]) -> List[str]:
    """Split a comma-separated endpoint list, dropping blanks and trailing slashes."""
    if raw is None:
        return list(DEFAULT_RPC_ENDPOINTS)
    endpoints = [item.strip().rstrip("/") for item in raw.split(",")]
    endpoints = [item for item in endpoints if item]
    if not endpoints:
        raise ValueError("STARKNET_RPC_URLS must list at least one endpoint.")
    return endpoints


def _positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1.")
    return value


def _non_negative_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative.")
    return value


def _positive_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'.") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero.")
    return value


def load_config() -> Config:
    """Load configuration from environment variables."""
    endpoints = parse_endpoints(os.getenv("STARKNET_RPC_URLS"))
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    return Config(
        rpc_endpoints=endpoints,
        request_timeout=_positive_float("REQUEST_TIMEOUT", "10"),
        probe_timeout=_positive_float("PROBE_TIMEOUT", "5"),
        event_chunk_size=_positive_int("EVENT_CHUNK_SIZE", "1000"),
        max_event_pages=_positive_int("MAX_EVENT_PAGES", "100"),
        default_scan_window=_non_negative_int("DEFAULT_SCAN_WINDOW", "1000"),
        scan_concurrency=_positive_int("SCAN_CONCURRENCY", "4"),
        log_level=log_level,
    )


def configure_logging(config: Config) -> None:
    # stderr only: stdout carries JSON output and the MCP stdio stream.
    level = getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
