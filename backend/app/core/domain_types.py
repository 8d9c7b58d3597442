"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - DiscountSetId, DiscountId, ClaimToken wrap UUIDs — never use bare UUID in domain logic
    - Every valid item/polling state is an Enum member — no raw string matching
    - DiscountStatus.IN_PROGRESS is only ever held under a claim token

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to the DB `status` column without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

DiscountSetId = NewType("DiscountSetId", UUID)
DiscountId = NewType("DiscountId", UUID)
ClaimToken = NewType("ClaimToken", UUID)

ShopDomain = NewType("ShopDomain", str)
TemplateRef = NewType("TemplateRef", str)     # gid://shopify/DiscountCodeNode/<n>
RemoteId = NewType("RemoteId", str)


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_BATCH_SIZE = 5
DEFAULT_POLL_INTERVAL_MS = 500
FORCED_USAGE_LIMIT = 1
TEMPLATE_GID_PREFIX = "gid://shopify/DiscountCodeNode/"


# ─── Enums ───────────────────────────────────────────────────────

class DiscountStatus(str, Enum):
    """Job item lifecycle — maps to DB `status` column."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    CREATED = "CREATED"
    FAILED = "FAILED"


# Rows that still need work before a set is complete
UNFINISHED_STATUSES = frozenset({DiscountStatus.PENDING, DiscountStatus.IN_PROGRESS})


class PollingPhase(str, Enum):
    """Client-side polling protocol states."""
    IDLE = "idle"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"
