"""Tracing of admin actions.

Each action run records its steps (validate, submit, confirm, refresh) and
the final outcome so the console can show what happened to a transaction.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepStatus(str, Enum):
    """Status of a single action step."""
    STARTED = "STARTED"
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"


class ActionStatus(str, Enum):
    """Overall outcome of an admin action."""
    RUNNING = "RUNNING"
    REJECTED = "REJECTED"        # Stopped before submission
    FAILED = "FAILED"            # Submitted and reported failed
    UNCONFIRMED = "UNCONFIRMED"  # Submitted, confirmation timed out
    CONFIRMED = "CONFIRMED"


@dataclass
class ActionStep:
    step_number: int
    name: str
    status: StepStatus
    started_at: str
    completed_at: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class ActionTrace:
    """Complete record of one admin action."""
    trace_id: str
    action: str
    admin_address: Optional[str]
    status: ActionStatus = ActionStatus.RUNNING
    started_at: str = field(default_factory=_now)
    completed_at: Optional[str] = None
    digest: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    steps: List[ActionStep] = field(default_factory=list)

    @classmethod
    def start(cls, action: str, admin_address: Optional[str]) -> "ActionTrace":
        return cls(trace_id=uuid.uuid4().hex, action=action, admin_address=admin_address)

    def add_step(self, name: str) -> ActionStep:
        """Add a new step in STARTED state.

        Args:
            name: Step name, e.g. "submit"

        Returns:
            The created ActionStep
        """
        step = ActionStep(
            step_number=len(self.steps) + 1,
            name=name,
            status=StepStatus.STARTED,
            started_at=_now(),
        )
        self.steps.append(step)
        return step

    def finish_step(self, step: ActionStep, error_message: Optional[str] = None) -> None:
        step.status = StepStatus.FAIL if error_message else StepStatus.SUCCESS
        step.completed_at = _now()
        step.error_message = error_message

    def complete(self, status: ActionStatus, error: Optional[Dict[str, Any]] = None) -> None:
        self.status = status
        self.completed_at = _now()
        if error is not None:
            self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TraceStore:
    """In-memory store for action traces, bounded to the most recent entries."""

    def __init__(self, max_traces: int = 500):
        self.max_traces = max_traces
        self._traces: Dict[str, ActionTrace] = {}

    def store(self, trace: ActionTrace) -> None:
        self._traces[trace.trace_id] = trace
        while len(self._traces) > self.max_traces:
            # dicts keep insertion order, so the first key is the oldest
            del self._traces[next(iter(self._traces))]

    def get(self, trace_id: str) -> Optional[ActionTrace]:
        return self._traces.get(trace_id)

    def get_recent(self, limit: int = 10) -> List[ActionTrace]:
        """Get the most recent traces, most recent first."""
        traces = sorted(self._traces.values(), key=lambda t: t.started_at, reverse=True)
        return traces[:limit]


# Global trace store instance
_trace_store = TraceStore()


def get_trace_store() -> TraceStore:
    """Get the global trace store instance."""
    return _trace_store
