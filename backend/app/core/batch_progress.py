"""Batch Progress — pure computation of per-set counts and progress messages.

Invariants:
    - remaining counts every unfinished item (PENDING + IN_PROGRESS)
    - complete ⇔ remaining == 0
    - Never raises — missing statuses default to 0
"""

from dataclasses import dataclass

from app.core.domain_types import DiscountStatus


@dataclass(frozen=True)
class StatusCounts:
    """Per-status totals for one discount set."""
    pending: int = 0
    in_progress: int = 0
    created: int = 0
    failed: int = 0

    @classmethod
    def from_mapping(cls, counts: dict) -> "StatusCounts":
        def get(status: DiscountStatus) -> int:
            return int(counts.get(status, counts.get(status.value, 0)) or 0)

        return cls(
            pending=get(DiscountStatus.PENDING),
            in_progress=get(DiscountStatus.IN_PROGRESS),
            created=get(DiscountStatus.CREATED),
            failed=get(DiscountStatus.FAILED),
        )

    @property
    def remaining(self) -> int:
        return self.pending + self.in_progress

    @property
    def total(self) -> int:
        return self.remaining + self.created + self.failed

    def as_dict(self) -> dict:
        return {
            "pending": self.pending,
            "in_progress": self.in_progress,
            "created": self.created,
            "failed": self.failed,
            "total": self.total,
        }


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one processBatch call."""
    processed: int
    remaining: int
    message: str
    created: int = 0
    failed: int = 0
    counts: StatusCounts | None = None

    @property
    def complete(self) -> bool:
        return self.remaining == 0


def format_field_errors(errors: list[dict]) -> str:
    """Join Admin API userErrors as 'field.path: message, ...'."""
    parts = []
    for err in errors:
        field = err.get("field")
        if isinstance(field, list):
            field = ".".join(str(f) for f in field)
        message = err.get("message") or "Unknown error"
        parts.append(f"{field}: {message}" if field else message)
    return ", ".join(parts)


def progress_message(processed: int, remaining: int) -> str:
    if remaining > 0:
        return f"Processed {processed} discounts. {remaining} remaining..."
    return f"Batch complete. Processed {processed} discounts."


def completion_message(counts: StatusCounts) -> str:
    return f"Processing complete. Created: {counts.created}, Failed: {counts.failed}"
