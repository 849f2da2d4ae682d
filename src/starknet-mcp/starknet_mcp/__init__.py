"""Read-only Starknet JSON-RPC data access: block lookup, events, contract activity."""
