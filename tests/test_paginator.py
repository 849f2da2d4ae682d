import pytest

from conftest import FakeChain, make_service, ok
from starknet_mcp.errors import InvalidBlockRange, InvalidEventsResponse
from starknet_mcp.events import TRANSFER_SELECTOR

CONTRACT = "0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"


def _event(block, tx="0x1", keys=None, data=None):
    return {
        "block_number": block,
        "transaction_hash": tx,
        "keys": keys if keys is not None else [TRANSFER_SELECTOR],
        "data": data if data is not None else ["0xabc", "0xdef", "0x64"],
    }


def test_follows_continuation_tokens_until_exhausted():
    pages = [
        {"events": [_event(100), _event(120)]},
        {"events": [_event(150)]},
        {"events": [_event(200, keys=["0x1234"])]},
    ]
    chain = FakeChain([10 * n for n in range(301)], event_pages=pages)
    service = make_service(chain)

    events = service.get_events(CONTRACT, 100, 200)

    assert [event.block_number for event in events] == [100, 120, 150, 200]
    assert [req.get("continuation_token") for req in chain.event_requests] == [None, "1", "2"]
    assert all(req["chunk_size"] == 1000 for req in chain.event_requests)
    assert all(req["address"] == CONTRACT for req in chain.event_requests)
    assert chain.event_requests[0]["from_block"] == {"block_number": 100}
    assert chain.event_requests[0]["to_block"] == {"block_number": 200}


def test_decodes_and_interpolates_with_two_block_fetches():
    pages = [{"events": [_event(100), _event(150), _event(200), _event(175, keys=[])]}]
    chain = FakeChain([10 * n for n in range(301)], event_pages=pages)
    service = make_service(chain)

    events = service.get_events(CONTRACT, 100, 200)

    methods = service.client.session.methods()
    assert methods == ["starknet_getEvents", "starknet_getBlockWithTxs", "starknet_getBlockWithTxs"]

    first, middle, last, unknown = events
    assert first.event_name == "Transfer"
    assert first.decoded_data == {"from": "0xabc", "to": "0xdef", "amount": "100"}
    assert (first.estimated_timestamp, middle.estimated_timestamp, last.estimated_timestamp) == (1000, 1500, 2000)
    assert middle.estimated_timestamp_iso == "1970-01-01T00:25:00+00:00"
    assert unknown.event_name == "Unknown Event"
    assert unknown.decoded_data == {}
    assert unknown.estimated_timestamp == 1750


def test_stops_at_page_cap_when_provider_always_returns_token():
    chain = FakeChain([10 * n for n in range(11)], endless_events=True)
    service = make_service(chain)

    events = service.get_events(CONTRACT, 0, 10)

    assert events == []
    assert len(chain.event_requests) == 100


def test_page_cap_is_configurable():
    chain = FakeChain([10 * n for n in range(11)], endless_events=True)
    service = make_service(chain, max_event_pages=3, event_chunk_size=50)

    service.get_events(CONTRACT, 0, 10)

    assert len(chain.event_requests) == 3
    assert chain.event_requests[0]["chunk_size"] == 50


def test_invalid_events_payload_raises():
    def handler(url, payload):
        return ok({"unexpected": True})

    service = make_service(handler)
    with pytest.raises(InvalidEventsResponse):
        service.get_events(CONTRACT, 0, 10)


def test_reversed_range_is_rejected_before_network():
    chain = FakeChain([0, 10, 20])
    service = make_service(chain)

    with pytest.raises(InvalidBlockRange):
        service.get_events(CONTRACT, 2, 1)
    assert service.client.session.calls == []


def test_contract_events_defaults_to_genesis_through_latest():
    pages = [{"events": [_event(5)]}]
    chain = FakeChain([10 * n for n in range(21)], event_pages=pages)
    service = make_service(chain)

    result = service.get_contract_events(CONTRACT)

    assert result["from_block"] == 0
    assert result["to_block"] == 20
    assert result["total_events"] == 1
    assert result["events"][0]["event_name"] == "Transfer"
    assert result["events"][0]["estimated_timestamp"] == 50


def test_contract_events_resolves_time_bounds():
    chain = FakeChain([10 * n for n in range(301)], event_pages=[{"events": []}])
    service = make_service(chain)

    result = service.get_contract_events(CONTRACT, from_timestamp=1000, to_timestamp=2000)

    assert (result["from_block"], result["to_block"]) == (100, 200)
    assert chain.event_requests[0]["from_block"] == {"block_number": 100}
