"""Lifecycle reconciliation engine.

Rebuilds which campaigns sit in which admin workflow stage. Events are only
used to discover campaign ids and to learn that a lifecycle transition
happened; current field values always come from a batched object store read,
and when the two disagree the object wins.

Every surface follows the same run:

1. discover created campaign ids under both packages (de-duplicated)
2. union the transition sets the surface cares about
3. classify ids by set algebra over those sets
4. batch read the surviving ids, skipping ones that do not resolve
5. take the denomination from each object's type signature
6. drop objects whose current fields contradict the event-derived stage
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from sinag_admin.clients.event_log import EventLogClient, RawEvent
from sinag_admin.clients.object_store import CampaignRecord, ObjectStoreClient
from sinag_admin.errors import QueryError
from sinag_admin.reconciliation.claims import ClaimAggregates, aggregate_claims
from sinag_admin.reconciliation.events import (
    CAMPAIGN_COMPLETED,
    CAMPAIGN_CREATED,
    CAMPAIGN_FINALIZED,
    CAMPAIGN_MANUALLY_CLOSED,
    FUNDS_WITHDRAWN,
    YIELD_CLAIMED,
    YIELD_ROUND_CLOSED,
    YIELD_ROUND_OPENED,
    CampaignEvent,
    YieldClaimed,
    YieldRoundClosed,
    YieldRoundOpened,
    decode_events,
)

logger = logging.getLogger(__name__)


@dataclass
class EventSnapshot:
    """Decoded and unioned event state of one reconciliation run."""

    created_ids: List[str] = field(default_factory=list)
    completed: Set[str] = field(default_factory=set)
    manually_closed: Set[str] = field(default_factory=set)
    finalized: Set[str] = field(default_factory=set)
    withdrawn: Set[str] = field(default_factory=set)
    opened_rounds: Dict[str, Dict[int, YieldRoundOpened]] = field(default_factory=dict)
    closed_rounds: Dict[str, Dict[int, YieldRoundClosed]] = field(default_factory=dict)
    claims: ClaimAggregates = field(default_factory=ClaimAggregates)

    @property
    def created(self) -> Set[str]:
        return set(self.created_ids)

    @property
    def closed(self) -> Set[str]:
        """Campaigns that left Active, either way."""
        return self.completed | self.manually_closed

    def is_round_closed(self, campaign_id: str, round_number: int) -> bool:
        return round_number in self.closed_rounds.get(campaign_id, {})

    def open_round_numbers(self, campaign_id: str) -> List[int]:
        opened = self.opened_rounds.get(campaign_id, {})
        return sorted(n for n in opened if not self.is_round_closed(campaign_id, n))

    @classmethod
    def from_events(cls, events_by_name: Dict[str, Sequence[RawEvent]]) -> "EventSnapshot":
        snapshot = cls()

        def ids(name: str) -> Iterable[str]:
            for event in decode_events(events_by_name.get(name, [])):
                if isinstance(event, CampaignEvent):
                    yield event.campaign_id

        # dict.fromkeys keeps first-seen order while dropping repeats
        snapshot.created_ids = list(dict.fromkeys(ids(CAMPAIGN_CREATED)))
        snapshot.completed = set(ids(CAMPAIGN_COMPLETED))
        snapshot.manually_closed = set(ids(CAMPAIGN_MANUALLY_CLOSED))
        snapshot.finalized = set(ids(CAMPAIGN_FINALIZED))
        snapshot.withdrawn = set(ids(FUNDS_WITHDRAWN))

        for event in decode_events(events_by_name.get(YIELD_ROUND_OPENED, [])):
            if isinstance(event, YieldRoundOpened):
                rounds = snapshot.opened_rounds.setdefault(event.campaign_id, {})
                # descending query order: the first record seen is the newest
                rounds.setdefault(event.round_number, event)

        for event in decode_events(events_by_name.get(YIELD_ROUND_CLOSED, [])):
            if isinstance(event, YieldRoundClosed):
                rounds = snapshot.closed_rounds.setdefault(event.campaign_id, {})
                rounds.setdefault(event.round_number, event)

        claims = [
            e for e in decode_events(events_by_name.get(YIELD_CLAIMED, []))
            if isinstance(e, YieldClaimed)
        ]
        snapshot.claims = aggregate_claims(claims)
        return snapshot


@dataclass
class BucketSets:
    """Event-derived candidate ids per workflow, in discovery order."""

    created: List[str]
    closeable: List[str]
    finalizable: List[str]
    withdrawable: List[str]
    yield_openable: List[str]
    with_open_rounds: List[str]


def classify(snapshot: EventSnapshot) -> BucketSets:
    """Pure set algebra over one snapshot.

    closeable and finalizable are disjoint: one requires the campaign to be
    outside the closed set, the other inside it.
    """
    closed = snapshot.closed
    created = snapshot.created_ids
    return BucketSets(
        created=list(created),
        closeable=[cid for cid in created if cid not in closed],
        finalizable=[cid for cid in created if cid in closed and cid not in snapshot.finalized],
        withdrawable=[cid for cid in created if cid in snapshot.finalized],
        yield_openable=[cid for cid in created if cid in snapshot.finalized],
        with_open_rounds=[cid for cid in created if snapshot.open_round_numbers(cid)],
    )


@dataclass
class RoundView:
    round_number: int
    yield_per_share: int
    total_deposited: int
    total_claimed: int
    claimed_shares: int
    is_active: bool
    opened_at: Optional[int] = None
    closed_at: Optional[int] = None

    @property
    def claim_anomaly(self) -> bool:
        """More claimed than deposited: surfaced, never clamped."""
        return self.total_claimed > self.total_deposited

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_number": self.round_number,
            "yield_per_share": str(self.yield_per_share),
            "total_deposited": str(self.total_deposited),
            "total_claimed": str(self.total_claimed),
            "claimed_shares": str(self.claimed_shares),
            "is_active": self.is_active,
            "opened_at": str(self.opened_at) if self.opened_at is not None else None,
            "closed_at": str(self.closed_at) if self.closed_at is not None else None,
            "claim_anomaly": self.claim_anomaly,
        }


@dataclass
class CampaignView:
    """A reconciled campaign ready for one admin surface."""

    campaign: CampaignRecord
    has_withdrawals: bool = False
    active_round: Optional[RoundView] = None
    rounds: List[RoundView] = field(default_factory=list)

    @property
    def object_id(self) -> str:
        return self.campaign.object_id

    def to_dict(self) -> Dict[str, Any]:
        data = self.campaign.to_dict()
        data["has_withdrawals"] = self.has_withdrawals
        data["active_round"] = self.active_round.to_dict() if self.active_round else None
        data["yield_rounds"] = [r.to_dict() for r in self.rounds]
        return data


def _round_view(
    snapshot: EventSnapshot,
    opened: YieldRoundOpened,
    is_active: bool
) -> RoundView:
    stats = snapshot.claims.get(opened.campaign_id, opened.round_number)
    closed = snapshot.closed_rounds.get(opened.campaign_id, {}).get(opened.round_number)
    view = RoundView(
        round_number=opened.round_number,
        yield_per_share=opened.yield_per_share,
        total_deposited=opened.total_deposited,
        total_claimed=stats.total_claimed,
        claimed_shares=stats.claimed_shares,
        is_active=is_active,
        opened_at=opened.timestamp,
        closed_at=closed.timestamp if closed else None,
    )
    if view.claim_anomaly:
        logger.warning(
            f"Campaign {opened.campaign_id} round {opened.round_number}: "
            f"claimed {view.total_claimed} exceeds deposited {view.total_deposited}"
        )
    return view


class LifecycleEngine:
    """Classifies campaigns into admin workflow buckets."""

    def __init__(self, event_log: EventLogClient, object_store: ObjectStoreClient):
        self.event_log = event_log
        self.object_store = object_store

    async def snapshot(self, event_names: Iterable[str]) -> EventSnapshot:
        """Query the created stream plus the given transition streams concurrently."""
        names = [CAMPAIGN_CREATED] + [n for n in event_names if n != CAMPAIGN_CREATED]
        events = await self.event_log.query_many(names)
        snapshot = EventSnapshot.from_events(events)
        logger.info(f"Snapshot: {len(snapshot.created_ids)} campaigns from {len(names)} event streams")
        return snapshot

    async def _reconcile(
        self,
        surface: str,
        event_names: Iterable[str],
        candidates: Callable[[BucketSets], List[str]],
        build: Callable[[EventSnapshot, CampaignRecord], Optional[CampaignView]],
    ) -> List[CampaignView]:
        try:
            snapshot = await self.snapshot(event_names)
            candidate_ids = candidates(classify(snapshot))
            if not candidate_ids:
                logger.info(f"{surface}: no candidates")
                return []
            records = await self.object_store.get_campaigns(candidate_ids)
        except QueryError as e:
            logger.error(f"{surface}: reconciliation aborted: {e.message}")
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"{surface}: malformed ledger response: {e}")
            raise QueryError(f"Malformed ledger response while loading {surface}") from e

        views = []
        for record in records:
            view = build(snapshot, record)
            if view is None:
                logger.info(f"{surface}: {record.object_id} excluded by current object state")
                continue
            views.append(view)
        logger.info(f"{surface}: {len(views)} of {len(candidate_ids)} candidates")
        return views

    async def closeable_campaigns(self) -> List[CampaignView]:
        """Campaigns still Active that an admin may close manually."""

        def build(snapshot, record):
            return CampaignView(record) if record.is_active else None

        return await self._reconcile(
            "closeable",
            [CAMPAIGN_COMPLETED, CAMPAIGN_MANUALLY_CLOSED],
            lambda buckets: buckets.closeable,
            build,
        )

    async def finalizable_campaigns(self) -> List[CampaignView]:
        """Closed or completed campaigns that have not been finalized."""

        def build(snapshot, record):
            if record.is_active or record.is_finalized:
                return None
            return CampaignView(record)

        return await self._reconcile(
            "finalizable",
            [CAMPAIGN_COMPLETED, CAMPAIGN_MANUALLY_CLOSED, CAMPAIGN_FINALIZED],
            lambda buckets: buckets.finalizable,
            build,
        )

    async def withdrawable_campaigns(self) -> List[CampaignView]:
        """Finalized campaigns still holding a balance."""

        def build(snapshot, record):
            if not record.is_finalized or record.balance <= 0:
                return None
            return CampaignView(record, has_withdrawals=record.object_id in snapshot.withdrawn)

        return await self._reconcile(
            "withdrawable",
            [CAMPAIGN_FINALIZED, FUNDS_WITHDRAWN],
            lambda buckets: buckets.withdrawable,
            build,
        )

    async def yield_openable_campaigns(self) -> List[CampaignView]:
        """Finalized, yield-enabled campaigns with no round currently open."""

        def build(snapshot, record):
            if record.is_active or not record.is_finalized or not record.yield_enabled:
                return None
            current = record.current_round or 0
            if current > 0 and not snapshot.is_round_closed(record.object_id, current):
                return None
            return CampaignView(record)

        return await self._reconcile(
            "yield_openable",
            [CAMPAIGN_FINALIZED, YIELD_ROUND_OPENED, YIELD_ROUND_CLOSED],
            lambda buckets: buckets.yield_openable,
            build,
        )

    async def active_yield_rounds(self) -> List[CampaignView]:
        """Campaigns whose current round is open, with live claim totals."""

        def build(snapshot, record):
            current = record.current_round or 0
            if current == 0 or snapshot.is_round_closed(record.object_id, current):
                return None
            opened = snapshot.opened_rounds.get(record.object_id, {}).get(current)
            if opened is None:
                logger.warning(f"{record.object_id}: round {current} has no YieldRoundOpened event")
                return None
            return CampaignView(record, active_round=_round_view(snapshot, opened, True))

        return await self._reconcile(
            "active_yield_rounds",
            [YIELD_ROUND_OPENED, YIELD_ROUND_CLOSED, YIELD_CLAIMED],
            lambda buckets: buckets.with_open_rounds,
            build,
        )

    async def yield_statistics(self) -> List[CampaignView]:
        """Every campaign with at least one round, all rounds attached."""

        def build(snapshot, record):
            current = record.current_round or 0
            if current == 0:
                return None
            opened = snapshot.opened_rounds.get(record.object_id, {})
            rounds = []
            for number in sorted(opened):
                is_active = number == current and not snapshot.is_round_closed(record.object_id, number)
                if number != current and not snapshot.is_round_closed(record.object_id, number):
                    logger.warning(f"{record.object_id}: round {number} superseded without a close event")
                rounds.append(_round_view(snapshot, opened[number], is_active))
            active = next((r for r in rounds if r.is_active), None)
            return CampaignView(record, active_round=active, rounds=rounds)

        return await self._reconcile(
            "yield_statistics",
            [YIELD_ROUND_OPENED, YIELD_ROUND_CLOSED, YIELD_CLAIMED],
            lambda buckets: buckets.created,
            build,
        )

    async def surface(self, name: str) -> List[CampaignView]:
        """Dispatch by surface name, as used by the HTTP layer."""
        handlers = {
            "closeable": self.closeable_campaigns,
            "finalizable": self.finalizable_campaigns,
            "withdrawable": self.withdrawable_campaigns,
            "yield-openable": self.yield_openable_campaigns,
            "active-yield-rounds": self.active_yield_rounds,
            "yield-statistics": self.yield_statistics,
        }
        if name not in handlers:
            raise KeyError(name)
        return await handlers[name]()


SURFACES = (
    "closeable",
    "finalizable",
    "withdrawable",
    "yield-openable",
    "active-yield-rounds",
    "yield-statistics",
)


def summarize_yield(views: List[CampaignView]) -> Dict[str, Any]:
    """Totals per denomination for the statistics page."""
    summary: Dict[str, Any] = {
        "campaigns": len(views),
        "rounds": 0,
        "active_rounds": 0,
        "distributed": {"SUI": 0, "USDC": 0},
        "claimed": {"SUI": 0, "USDC": 0},
        "anomalies": 0,
    }
    for view in views:
        coin = view.campaign.coin_type
        summary["distributed"][coin] += view.campaign.total_yield_distributed or 0
        for r in view.rounds:
            summary["rounds"] += 1
            summary["active_rounds"] += 1 if r.is_active else 0
            summary["claimed"][coin] += r.total_claimed
            summary["anomalies"] += 1 if r.claim_anomaly else 0
    summary["distributed"] = {k: str(v) for k, v in summary["distributed"].items()}
    summary["claimed"] = {k: str(v) for k, v in summary["claimed"].items()}
    return summary
