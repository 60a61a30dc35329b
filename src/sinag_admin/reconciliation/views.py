"""Last-good holder for reconciled lists.

Each refresh takes a generation number. Only the latest run may replace the
stored list or set its error, and a failed run leaves the previous list in
place so an error never overwrites what was last shown with an empty list.
A run overtaken by a newer one still hands its own result to its caller.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from sinag_admin.errors import QueryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ViewState(Generic[T]):
    items: List[T] = field(default_factory=list)
    loaded: bool = False
    error: Optional[str] = None
    generation: int = 0


class BucketView(Generic[T]):
    """Holds the latest successfully reconciled list for one surface."""

    def __init__(self, name: str, loader: Callable[[], Awaitable[List[T]]]):
        self.name = name
        self.loader = loader
        self.state: ViewState[T] = ViewState()
        self._generations = itertools.count(1)
        self._latest = 0

    @property
    def items(self) -> List[T]:
        return self.state.items

    async def refresh(self) -> ViewState[T]:
        """Run the loader and return what this run produced.

        The stored state is only replaced when no newer run has started.
        """
        generation = next(self._generations)
        self._latest = generation

        try:
            items = await self.loader()
        except QueryError as e:
            logger.error(f"{self.name}: failed to load: {e.message}")
            error = f"Failed to load {self.name}. Please retry."
            if generation != self._latest:
                logger.info(f"{self.name}: not recording failure of stale run {generation}")
                return ViewState(
                    items=self.state.items,
                    loaded=self.state.loaded,
                    error=error,
                    generation=self.state.generation,
                )
            self.state.error = error
            return self.state

        fresh = ViewState(items=items, loaded=True, error=None, generation=generation)
        if generation != self._latest:
            logger.info(f"{self.name}: not storing stale run {generation} (latest {self._latest})")
            return fresh
        self.state = fresh
        return fresh
