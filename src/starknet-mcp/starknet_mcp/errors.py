from typing import Any, Optional


class StarknetRpcError(Exception):
    """Base class for errors raised by the Starknet data-access layer."""

    category = "internal"


class AllEndpointsFailed(StarknetRpcError, RuntimeError):
    category = "service_unavailable"

    def __init__(self, method: str, attempts: int, last_error: Optional[Any] = None) -> None:
        self.method = method
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"All RPC endpoints failed for {method} after {attempts} attempt(s).")


class InvalidBlockNumberFormat(StarknetRpcError, ValueError):
    category = "bad_request"

    def __init__(self, value: Any, field: str = "block_number") -> None:
        self.value = value
        self.field = field
        super().__init__(f"{field} must be a block number in decimal or 0x-prefixed hexadecimal.")


class InvalidEventsResponse(StarknetRpcError, ValueError):
    category = "bad_request"

    def __init__(self) -> None:
        super().__init__("Invalid events response (missing events array).")


class InvalidAddressFormat(StarknetRpcError, ValueError):
    category = "bad_request"

    def __init__(self, address: Any) -> None:
        self.address = address
        super().__init__("Invalid contract address format. Expected 0x-prefixed 66-character address.")


class InvalidBlockRange(StarknetRpcError, ValueError):
    category = "bad_request"

    def __init__(self, from_block: int, to_block: int) -> None:
        self.from_block = from_block
        self.to_block = to_block
        super().__init__(f"from_block ({from_block}) cannot be greater than to_block ({to_block}).")


class RpcSchemaError(StarknetRpcError, ValueError):
    """A provider returned a result that does not match the method's expected shape."""

    category = "bad_gateway"

    def __init__(self, method: str, detail: str) -> None:
        self.method = method
        self.detail = detail
        super().__init__(f"Unexpected {method} result: {detail}.")
