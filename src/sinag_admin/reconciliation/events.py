"""Typed decoding of campaign module events.

Each event name maps to one dataclass with explicit required and optional
fields. Payloads missing a required field raise ``EventDecodeError``;
``decode_events`` skips such records with a warning.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from sinag_admin.clients.event_log import RawEvent
from sinag_admin.errors import EventDecodeError

logger = logging.getLogger(__name__)

CAMPAIGN_CREATED = "CampaignCreated"
CAMPAIGN_COMPLETED = "CampaignCompleted"
CAMPAIGN_MANUALLY_CLOSED = "CampaignManuallyClosed"
CAMPAIGN_FINALIZED = "CampaignFinalized"
FUNDS_WITHDRAWN = "FundsWithdrawn"
YIELD_ROUND_OPENED = "YieldRoundOpened"
YIELD_ROUND_CLOSED = "YieldRoundClosed"
YIELD_CLAIMED = "YieldClaimed"


def _required(payload: Dict[str, Any], key: str, event_name: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise EventDecodeError(f"{event_name} event missing '{key}'")
    return value


def _required_int(payload: Dict[str, Any], key: str, event_name: str) -> int:
    value = _required(payload, key, event_name)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise EventDecodeError(f"{event_name} event has non-integer '{key}': {value!r}")


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _timestamp(payload: Dict[str, Any], raw: RawEvent) -> Optional[int]:
    stamp = _optional_int(payload, "timestamp")
    return stamp if stamp is not None else raw.timestamp_ms


@dataclass(frozen=True)
class CampaignEvent:
    """Lifecycle transition of a single campaign."""

    name: str
    campaign_id: str
    timestamp: Optional[int] = None
    campaign_number: Optional[int] = None
    campaign_name: Optional[str] = None
    location: Optional[str] = None
    total_raised: Optional[int] = None
    shares_sold: Optional[int] = None
    amount: Optional[int] = None
    is_new_investor: Optional[bool] = None

    @classmethod
    def decode(cls, raw: RawEvent) -> "CampaignEvent":
        payload = raw.parsed_json
        new_investor = payload.get("is_new_investor")
        return cls(
            name=raw.name,
            campaign_id=_required(payload, "campaign_id", raw.name),
            timestamp=_timestamp(payload, raw),
            campaign_number=_optional_int(payload, "campaign_number"),
            campaign_name=payload.get("name"),
            location=payload.get("location"),
            total_raised=_optional_int(payload, "total_raised"),
            shares_sold=_optional_int(payload, "shares_sold"),
            amount=_optional_int(payload, "amount"),
            is_new_investor=bool(new_investor) if new_investor is not None else None,
        )


@dataclass(frozen=True)
class YieldRoundOpened:
    campaign_id: str
    round_number: int
    yield_per_share: int
    total_deposited: int
    timestamp: Optional[int] = None

    @classmethod
    def decode(cls, raw: RawEvent) -> "YieldRoundOpened":
        payload = raw.parsed_json
        return cls(
            campaign_id=_required(payload, "campaign_id", raw.name),
            round_number=_required_int(payload, "round_number", raw.name),
            yield_per_share=_optional_int(payload, "yield_per_share") or 0,
            total_deposited=_optional_int(payload, "total_deposited") or 0,
            timestamp=_timestamp(payload, raw),
        )


@dataclass(frozen=True)
class YieldRoundClosed:
    campaign_id: str
    round_number: int
    total_claimed: Optional[int] = None
    total_deposited: Optional[int] = None
    unclaimed_shares: Optional[int] = None
    timestamp: Optional[int] = None

    @classmethod
    def decode(cls, raw: RawEvent) -> "YieldRoundClosed":
        payload = raw.parsed_json
        return cls(
            campaign_id=_required(payload, "campaign_id", raw.name),
            round_number=_required_int(payload, "round_number", raw.name),
            total_claimed=_optional_int(payload, "total_claimed"),
            total_deposited=_optional_int(payload, "total_deposited"),
            unclaimed_shares=_optional_int(payload, "unclaimed_shares"),
            timestamp=_timestamp(payload, raw),
        )


@dataclass(frozen=True)
class YieldClaimed:
    campaign_id: str
    round_number: int
    amount: int
    nft_id: Optional[str] = None
    claimer: Optional[str] = None
    timestamp: Optional[int] = None

    @classmethod
    def decode(cls, raw: RawEvent) -> "YieldClaimed":
        payload = raw.parsed_json
        return cls(
            campaign_id=_required(payload, "campaign_id", raw.name),
            round_number=_required_int(payload, "round_number", raw.name),
            amount=_required_int(payload, "amount", raw.name),
            nft_id=payload.get("nft_id"),
            claimer=payload.get("claimer"),
            timestamp=_timestamp(payload, raw),
        )


DECODERS: Dict[str, Callable[[RawEvent], Any]] = {
    CAMPAIGN_CREATED: CampaignEvent.decode,
    CAMPAIGN_COMPLETED: CampaignEvent.decode,
    CAMPAIGN_MANUALLY_CLOSED: CampaignEvent.decode,
    CAMPAIGN_FINALIZED: CampaignEvent.decode,
    FUNDS_WITHDRAWN: CampaignEvent.decode,
    YIELD_ROUND_OPENED: YieldRoundOpened.decode,
    YIELD_ROUND_CLOSED: YieldRoundClosed.decode,
    YIELD_CLAIMED: YieldClaimed.decode,
}


def decode_event(raw: RawEvent) -> Any:
    """Decode one raw event into its typed variant."""
    decoder = DECODERS.get(raw.name)
    if decoder is None:
        raise EventDecodeError(f"Unknown event type: {raw.event_type}")
    return decoder(raw)


def decode_events(raws: Iterable[RawEvent]) -> List[Any]:
    """Decode a stream, skipping undecodable records."""
    decoded = []
    for raw in raws:
        try:
            decoded.append(decode_event(raw))
        except EventDecodeError as e:
            logger.warning(f"Skipping event: {e.message}")
    return decoded
