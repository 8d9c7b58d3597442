"""Domain Types — verifies identity wrappers, constants and enum values.

Tests:
    - NewType wrappers are transparent over UUID/str
    - DiscountStatus values match the persisted status strings
    - UNFINISHED_STATUSES is exactly PENDING + IN_PROGRESS
"""

from uuid import uuid4

from app.core.domain_types import (
    DiscountSetId, DiscountId, ClaimToken, TemplateRef,
    DiscountStatus, PollingPhase, UNFINISHED_STATUSES,
    DEFAULT_BATCH_SIZE, FORCED_USAGE_LIMIT, TEMPLATE_GID_PREFIX,
)


def test_identity_types_wrap_uuid():
    uid = uuid4()
    assert DiscountSetId(uid) == uid
    assert DiscountId(uid) == uid
    assert ClaimToken(uid) == uid


def test_template_ref_wraps_str():
    assert TemplateRef("gid://shopify/DiscountCodeNode/1") == "gid://shopify/DiscountCodeNode/1"


def test_discount_status_has_four_states():
    assert {s.value for s in DiscountStatus} == {
        "PENDING", "IN_PROGRESS", "CREATED", "FAILED",
    }


def test_discount_status_is_str_enum():
    assert DiscountStatus.CREATED == "CREATED"
    assert DiscountStatus("FAILED") is DiscountStatus.FAILED


def test_unfinished_statuses():
    assert UNFINISHED_STATUSES == {DiscountStatus.PENDING, DiscountStatus.IN_PROGRESS}


def test_polling_phases():
    assert [p.value for p in PollingPhase] == [
        "idle", "submitted", "processing", "complete", "failed",
    ]


def test_constants():
    assert DEFAULT_BATCH_SIZE == 5
    assert FORCED_USAGE_LIMIT == 1
    assert TEMPLATE_GID_PREFIX == "gid://shopify/DiscountCodeNode/"
