"""Per-round aggregation of individually emitted YieldClaimed events."""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Tuple

from sinag_admin.reconciliation.events import YieldClaimed

ClaimKey = Tuple[str, int]


@dataclass(frozen=True)
class ClaimStats:
    total_claimed: int = 0
    claimed_shares: int = 0


EMPTY_STATS = ClaimStats()


class ClaimAggregates:
    """Mapping of (campaign id, round number) to claim totals.

    Lookups of keys with no claims return zero totals rather than failing.
    """

    def __init__(self, stats: Dict[ClaimKey, ClaimStats] = None):
        self._stats: Dict[ClaimKey, ClaimStats] = dict(stats or {})

    def get(self, campaign_id: str, round_number: int) -> ClaimStats:
        return self._stats.get((campaign_id, int(round_number)), EMPTY_STATS)

    def __contains__(self, key: ClaimKey) -> bool:
        return key in self._stats

    def __iter__(self) -> Iterator[ClaimKey]:
        return iter(self._stats)

    def __len__(self) -> int:
        return len(self._stats)

    def items(self):
        return self._stats.items()

    def as_dict(self) -> Dict[ClaimKey, Tuple[int, int]]:
        return {key: (s.total_claimed, s.claimed_shares) for key, s in self._stats.items()}


def aggregate_claims(events: Iterable[YieldClaimed]) -> ClaimAggregates:
    """Sum amounts and count claims per (campaign, round).

    Amounts are Python ints, so totals past 2**53 stay exact. Each event counts
    as one claimed share; duplicate claims are not detected here.
    """
    totals: Dict[ClaimKey, int] = {}
    counts: Dict[ClaimKey, int] = {}
    for event in events:
        key = (event.campaign_id, int(event.round_number))
        totals[key] = totals.get(key, 0) + int(event.amount)
        counts[key] = counts.get(key, 0) + 1
    return ClaimAggregates({key: ClaimStats(totals[key], counts[key]) for key in totals})
