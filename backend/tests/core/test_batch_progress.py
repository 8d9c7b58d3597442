"""Batch Progress — counts, completion flag and user-facing messages.

Tests:
    - StatusCounts accepts enum or string keys, missing statuses are 0
    - remaining = PENDING + IN_PROGRESS; complete ⇔ remaining == 0
    - userErrors joined as "field.path: message"
"""

from app.core.batch_progress import (
    StatusCounts, BatchOutcome, format_field_errors,
    progress_message, completion_message,
)
from app.core.domain_types import DiscountStatus


def test_counts_from_enum_keys():
    counts = StatusCounts.from_mapping({
        DiscountStatus.PENDING: 3,
        DiscountStatus.IN_PROGRESS: 2,
        DiscountStatus.CREATED: 4,
    })
    assert counts.pending == 3
    assert counts.in_progress == 2
    assert counts.failed == 0
    assert counts.remaining == 5
    assert counts.total == 9


def test_counts_from_string_keys():
    counts = StatusCounts.from_mapping({"CREATED": 2, "FAILED": 1})
    assert counts.as_dict() == {
        "pending": 0, "in_progress": 0, "created": 2, "failed": 1, "total": 3,
    }


def test_outcome_complete_only_when_nothing_remains():
    assert BatchOutcome(processed=5, remaining=0, message="").complete
    assert not BatchOutcome(processed=5, remaining=1, message="").complete


def test_format_field_errors_joins_path_and_message():
    errors = [
        {"field": ["basicCodeDiscount", "code"], "message": "Code must be unique"},
        {"field": None, "message": "Something else"},
    ]
    assert format_field_errors(errors) == (
        "basicCodeDiscount.code: Code must be unique, Something else"
    )


def test_format_field_errors_missing_message():
    assert format_field_errors([{"field": ["code"]}]) == "code: Unknown error"


def test_format_field_errors_empty():
    assert format_field_errors([]) == ""


def test_progress_message():
    assert progress_message(5, 7) == "Processed 5 discounts. 7 remaining..."
    assert progress_message(2, 0) == "Batch complete. Processed 2 discounts."


def test_completion_message():
    counts = StatusCounts(created=11, failed=1)
    assert completion_message(counts) == "Processing complete. Created: 11, Failed: 1"
