"""Explicit state for one paged sync phase.

    idle -> fetching_page -> reconciling -> fetching_page -> ... -> completed
                    \\              \\
                     +--------------+--> failed

The page cursor and processed count live here rather than in loop locals, so
a failed run can record exactly where it stopped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from profit_service.exceptions import InvalidStateTransition


class PhaseState(str, Enum):
    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    RECONCILING = "reconciling"
    COMPLETED = "completed"
    FAILED = "failed"


TRANSITIONS: dict[PhaseState, set[PhaseState]] = {
    PhaseState.IDLE: {PhaseState.FETCHING_PAGE, PhaseState.FAILED},
    PhaseState.FETCHING_PAGE: {
        PhaseState.RECONCILING,
        PhaseState.COMPLETED,
        PhaseState.FAILED,
    },
    PhaseState.RECONCILING: {
        PhaseState.FETCHING_PAGE,
        PhaseState.COMPLETED,
        PhaseState.FAILED,
    },
    PhaseState.COMPLETED: set(),
    PhaseState.FAILED: set(),
}


@dataclass
class PagedSyncState:
    """Cursor, counters and lifecycle of a products or orders phase."""

    sync_type: str
    page_size: int
    page: int = 1
    processed: int = 0
    state: PhaseState = PhaseState.IDLE
    error: str | None = None
    history: list[PhaseState] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in (PhaseState.COMPLETED, PhaseState.FAILED)

    def transition(self, target: PhaseState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidStateTransition(self.state.value, target.value)
        self.history.append(self.state)
        self.state = target

    def start_fetch(self) -> None:
        self.transition(PhaseState.FETCHING_PAGE)

    def page_fetched(self, entity_count: int) -> None:
        """Move to reconciling, or straight to completed on an empty page."""
        if entity_count == 0:
            self.transition(PhaseState.COMPLETED)
        else:
            self.transition(PhaseState.RECONCILING)

    def entity_done(self) -> None:
        self.processed += 1

    def page_done(self, entity_count: int) -> None:
        """A short page ends the phase; a full one advances the cursor."""
        if entity_count < self.page_size:
            self.transition(PhaseState.COMPLETED)
        else:
            self.page += 1

    def fail(self, message: str) -> None:
        self.error = message
        self.transition(PhaseState.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sync_type": self.sync_type,
            "state": self.state.value,
            "page": self.page,
            "processed": self.processed,
            "error": self.error,
        }
