"""Event Log adapter.

Queries campaign module events by name across the current and the legacy
package and merges the per-package result lists.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sinag_admin.clients.sui_rpc_client import SuiRpcClient
from sinag_admin.config import ProtocolConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawEvent:
    """One event record as returned by the node, payload still untyped."""

    event_type: str
    parsed_json: Dict[str, Any] = field(default_factory=dict)
    timestamp_ms: Optional[int] = None
    package_id: Optional[str] = None

    @property
    def name(self) -> str:
        return self.event_type.rsplit("::", 1)[-1]

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "RawEvent":
        timestamp = data.get("timestampMs")
        return cls(
            event_type=data.get("type", ""),
            parsed_json=data.get("parsedJson") or {},
            timestamp_ms=int(timestamp) if timestamp is not None else None,
            package_id=data.get("packageId"),
        )


class EventLogClient:
    """Reads campaign events from the ledger event log.

    Only the first page of each query is read unless ``max_pages`` says
    otherwise; the count of extra pages is always bounded.
    """

    def __init__(self, rpc: SuiRpcClient, config: ProtocolConfig):
        self.rpc = rpc
        self.config = config

    async def query(
        self,
        event_name: str,
        package_id: str,
        descending: bool = True
    ) -> List[RawEvent]:
        """Query one event type under a single package."""
        event_type = self.config.event_type(event_name, package_id)
        events: List[RawEvent] = []
        cursor = None

        for _ in range(self.config.event_query_max_pages):
            page = await self.rpc.query_events(event_type, cursor=cursor, descending=descending) or {}
            events.extend(RawEvent.from_rpc(item) for item in page.get("data", []))
            cursor = page.get("nextCursor")
            if not page.get("hasNextPage") or cursor is None:
                break
        else:
            if cursor is not None:
                logger.warning(
                    f"{event_type}: stopped after {self.config.event_query_max_pages} page(s), more events exist"
                )

        logger.debug(f"{event_type}: {len(events)} events")
        return events

    async def query_merged(self, event_name: str, descending: bool = True) -> List[RawEvent]:
        """Query an event type under legacy and current packages concurrently.

        Results are concatenated legacy first, each list in its own query
        order; they are not re-sorted globally.
        """
        per_package = await asyncio.gather(
            *(self.query(event_name, package_id, descending) for package_id in self.config.package_ids)
        )
        merged: List[RawEvent] = []
        for events in per_package:
            merged.extend(events)
        return merged

    async def query_many(
        self,
        event_names: Iterable[str],
        descending: bool = True
    ) -> Dict[str, List[RawEvent]]:
        """Run merged queries for several event types concurrently."""
        names = list(dict.fromkeys(event_names))
        results = await asyncio.gather(*(self.query_merged(name, descending) for name in names))
        return dict(zip(names, results))
