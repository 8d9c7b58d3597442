"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Job Store and Discount Gateway are accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass plain fakes
    - Gateway results are values (CodeCreated | CodeRejected, DeletionOutcome);
      transport failures raise ShopifyAPIError
"""

from dataclasses import dataclass, field
from typing import Protocol

from app.core.discount_template import DiscountTemplate, TemplateSummary
from app.core.domain_types import (
    DiscountSetId, DiscountId, ClaimToken, DiscountStatus,
)


@dataclass(frozen=True)
class CodeCreated:
    remote_id: str


@dataclass(frozen=True)
class CodeRejected:
    field_errors: list[dict] = field(default_factory=list)


CreateResult = CodeCreated | CodeRejected


@dataclass(frozen=True)
class DeletionOutcome:
    deleted: bool
    errors: list[dict] = field(default_factory=list)


class DiscountGateway(Protocol):
    """Contract for the remote discount service — implemented by infrastructure."""
    async def fetch_template(self, template_ref: str) -> DiscountTemplate | None: ...
    async def create_code(self, request: dict) -> CreateResult: ...
    async def delete_code(self, remote_id: str) -> DeletionOutcome: ...
    async def list_templates(self, limit: int) -> list[TemplateSummary]: ...


class DiscountSetLike(Protocol):
    """Structural contract for the set row the dispatcher reads."""
    id: DiscountSetId
    shop: str
    master_discount_id: str


class DiscountItemLike(Protocol):
    """Structural contract for claimed Discount rows passed to the dispatcher."""
    id: DiscountId
    code: str
    status: str


class JobStore(Protocol):
    """Contract for discount set/discount persistence — implemented by shell."""
    async def get_set(self, set_id: DiscountSetId) -> DiscountSetLike | None: ...
    async def create_set(self, name: str, shop: str, template_ref: str) -> DiscountSetId: ...
    async def create_items(
        self, set_id: DiscountSetId, shop: str, template_ref: str, codes: list[str],
    ) -> None: ...
    async def claim_pending(
        self, set_id: DiscountSetId, limit: int,
    ) -> tuple[ClaimToken, list[DiscountItemLike]]: ...
    async def release_claims(self, token: ClaimToken) -> int: ...
    async def mark_created(
        self, item_id: DiscountId, token: ClaimToken, remote_id: str,
    ) -> bool: ...
    async def mark_failed(
        self, item_id: DiscountId, token: ClaimToken, message: str,
    ) -> bool: ...
    async def count_by_status(self, set_id: DiscountSetId) -> dict[DiscountStatus, int]: ...
    async def count_unfinished(self, set_id: DiscountSetId) -> int: ...
    async def reset_failed_to_pending(self, set_id: DiscountSetId) -> int: ...
    async def delete_set(self, set_id: DiscountSetId) -> None: ...
    async def delete_item(self, item_id: DiscountId) -> None: ...
