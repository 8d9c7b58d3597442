"""Polling State — client-side state machine for driving a discount set to completion.

Invariants:
    - Transitions: IDLE → SUBMITTED → PROCESSING → COMPLETE
                   IDLE | SUBMITTED → FAILED        (submission rejected)
                   PROCESSING → FAILED              (batch-level error)
    - COMPLETE is terminal; FAILED and any stopped PROCESSING state are resumable
      because progress lives in the Job Store, not here
    - processed only grows; it counts items finished while this driver was polling

Design Decisions:
    - Pure dataclass with transition methods, no IO: the async coordinator owns
      the sleeping and the calls
    - Illegal transitions raise ValueError (programming errors, not user errors)
"""

from dataclasses import dataclass
from uuid import UUID

from app.core.batch_progress import BatchOutcome
from app.core.domain_types import PollingPhase


@dataclass
class PollingState:
    """Progress of one client polling a single discount set."""

    phase: PollingPhase = PollingPhase.IDLE
    discount_set_id: UUID | None = None
    total: int = 0
    processed: int = 0
    remaining: int | None = None
    message: str = ""
    error: str | None = None

    def submitted(self, discount_set_id: UUID, total: int) -> None:
        self._require(PollingPhase.IDLE)
        self.phase = PollingPhase.SUBMITTED
        self.discount_set_id = discount_set_id
        self.total = total
        self.remaining = total
        self.message = f"Queued {total} discount codes."

    def submission_failed(self, error: str) -> None:
        self._require(PollingPhase.IDLE, PollingPhase.SUBMITTED)
        self.phase = PollingPhase.FAILED
        self.error = error
        self.message = error

    def start(self) -> None:
        self._require(PollingPhase.SUBMITTED)
        self.phase = PollingPhase.PROCESSING
        self.message = "Starting processing..."

    def resume(self, discount_set_id: UUID, pending: int) -> None:
        """Re-enter PROCESSING for a set left partially processed."""
        if self.phase == PollingPhase.COMPLETE and self.discount_set_id == discount_set_id:
            raise ValueError("Set already complete in this driver")
        self.phase = PollingPhase.PROCESSING
        self.discount_set_id = discount_set_id
        self.total = pending
        self.processed = 0
        self.remaining = pending
        self.error = None
        self.message = "Resuming processing..."

    def record(self, outcome: BatchOutcome) -> None:
        """Apply one processBatch response."""
        self._require(PollingPhase.PROCESSING)
        self.processed += outcome.processed
        self.remaining = outcome.remaining
        self.message = outcome.message
        if outcome.complete:
            self.phase = PollingPhase.COMPLETE

    def batch_failed(self, error: str) -> None:
        self._require(PollingPhase.PROCESSING)
        self.phase = PollingPhase.FAILED
        self.error = error
        self.message = error

    @property
    def should_poll(self) -> bool:
        return self.phase == PollingPhase.PROCESSING

    @property
    def percent(self) -> float:
        """Progress bar value, capped at 100."""
        if self.total <= 0:
            return 100.0 if self.phase == PollingPhase.COMPLETE else 0.0
        return min(self.processed / self.total * 100, 100.0)

    def snapshot(self) -> dict:
        return {
            "phase": self.phase.value,
            "discount_set_id": str(self.discount_set_id) if self.discount_set_id else None,
            "total": self.total,
            "processed": self.processed,
            "remaining": self.remaining,
            "percent": round(self.percent, 1),
            "message": self.message,
            "error": self.error,
        }

    def _require(self, *phases: PollingPhase) -> None:
        if self.phase not in phases:
            expected = ", ".join(p.value for p in phases)
            raise ValueError(
                f"Invalid polling transition from {self.phase.value} (expected {expected})",
            )
