"""Typed event decoding and the two-package merged query."""

import asyncio

import pytest

from sinag_admin.clients.event_log import EventLogClient, RawEvent
from sinag_admin.errors import EventDecodeError
from sinag_admin.reconciliation.events import (
    CampaignEvent,
    YieldClaimed,
    YieldRoundOpened,
    decode_event,
    decode_events,
)

from conftest import LEGACY, PACKAGE, rpc_event


def raw(name, /, **payload):
    return RawEvent.from_rpc(rpc_event(PACKAGE, name, **payload))


def test_campaign_event_decodes_optional_fields():
    event = decode_event(raw("CampaignCreated", campaign_id="0x1", campaign_number="7", name="Villa"))

    assert isinstance(event, CampaignEvent)
    assert event.name == "CampaignCreated"
    assert event.campaign_id == "0x1"
    assert event.campaign_number == 7
    assert event.campaign_name == "Villa"
    assert event.timestamp == 1_700_000_000_000


def test_payload_timestamp_wins_over_envelope():
    event = decode_event(raw("CampaignFinalized", campaign_id="0x1", timestamp="42"))

    assert event.timestamp == 42


def test_round_events_coerce_string_integers():
    opened = decode_event(raw(
        "YieldRoundOpened", campaign_id="0x1", round_number="2",
        yield_per_share="1500000000", total_deposited="15000000000000",
    ))

    assert isinstance(opened, YieldRoundOpened)
    assert opened.round_number == 2
    assert opened.total_deposited == 15_000_000_000_000


def test_missing_required_field_raises():
    with pytest.raises(EventDecodeError):
        decode_event(raw("YieldClaimed", campaign_id="0x1", round_number="1"))


def test_unknown_event_type_raises():
    with pytest.raises(EventDecodeError):
        decode_event(raw("SomethingElse", campaign_id="0x1"))


def test_decode_events_skips_bad_records():
    events = decode_events([
        raw("YieldClaimed", campaign_id="0x1", round_number="1", amount="5"),
        raw("YieldClaimed", round_number="1", amount="5"),
        raw("YieldClaimed", campaign_id="0x1", round_number="x", amount="5"),
    ])

    assert len(events) == 1
    assert isinstance(events[0], YieldClaimed)


def test_merged_query_concatenates_legacy_first(config, ledger):
    ledger.emit(LEGACY, "CampaignCreated", campaign_id="0xA")
    ledger.emit(PACKAGE, "CampaignCreated", campaign_id="0xD")
    ledger.emit(LEGACY, "CampaignCreated", campaign_id="0xB")

    client = EventLogClient(ledger, config)
    merged = asyncio.run(client.query_merged("CampaignCreated"))

    assert [e.parsed_json["campaign_id"] for e in merged] == ["0xB", "0xA", "0xD"]
    assert [e.package_id for e in merged] == [LEGACY, LEGACY, PACKAGE]


def test_query_many_returns_each_name(config, ledger):
    ledger.emit(PACKAGE, "CampaignCreated", campaign_id="0xA")
    ledger.emit(PACKAGE, "CampaignFinalized", campaign_id="0xA")

    client = EventLogClient(ledger, config)
    results = asyncio.run(client.query_many(["CampaignCreated", "CampaignFinalized", "CampaignCreated"]))

    assert set(results) == {"CampaignCreated", "CampaignFinalized"}
    assert len(results["CampaignFinalized"]) == 1
    # two packages per name
    assert ledger.calls.count("query_events") == 4


def test_paging_is_bounded(config):
    class PagedRpc:
        def __init__(self):
            self.cursors = []

        async def query_events(self, move_event_type, cursor=None, limit=None, descending=True):
            self.cursors.append(cursor)
            n = len(self.cursors)
            return {
                "data": [rpc_event(PACKAGE, "CampaignCreated", campaign_id=f"0x{n}")],
                "nextCursor": {"txDigest": str(n), "eventSeq": "0"},
                "hasNextPage": True,
            }

    rpc = PagedRpc()
    config.event_query_max_pages = 3
    events = asyncio.run(EventLogClient(rpc, config).query("CampaignCreated", PACKAGE))

    assert len(events) == 3
    assert rpc.cursors[0] is None
    assert len(rpc.cursors) == 3
