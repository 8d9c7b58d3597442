"""Retry & Deletion — explicit user-triggered transitions on discount sets and items.

Invariants:
    - retry_failed touches only FAILED rows (→ PENDING, error cleared)
    - Remote deletion is attempted only for CREATED rows with a remote id
    - Remote deletion is best-effort: failures are logged and reported as
      diagnostics, never raised; the local delete always happens afterwards
    - Deleting a PENDING/FAILED item makes no remote call

Design Decisions:
    - Two-phase delete (remote, then local) with a DeletionReport side channel:
      the local store stays authoritative
"""

import logging
from dataclasses import dataclass, field

from app.core.domain_types import DiscountSetId, DiscountId, DiscountStatus
from app.core.errors import ResourceNotFoundError
from app.core.repository_protocols import DiscountGateway
from app.models.discount import Discount
from app.services.discount_store import DiscountStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryResult:
    reset: int
    pending_count: int

    @property
    def needs_processing(self) -> bool:
        return self.pending_count > 0

    @property
    def message(self) -> str:
        return f"{self.reset} failed discounts have been queued for retry."


@dataclass
class DeletionReport:
    """Diagnostics of a delete: local deletion always succeeded."""
    local_deleted: int = 0
    remote_attempted: int = 0
    remote_deleted: int = 0
    remote_failures: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "local_deleted": self.local_deleted,
            "remote_attempted": self.remote_attempted,
            "remote_deleted": self.remote_deleted,
            "remote_failures": self.remote_failures,
        }


async def retry_failed(store: DiscountStore, set_id: DiscountSetId) -> RetryResult:
    if not await store.get_set(set_id):
        raise ResourceNotFoundError("DiscountSet", str(set_id))
    reset = await store.reset_failed_to_pending(set_id)
    pending = await store.count_pending(set_id)
    logger.info(
        f"Reset {reset} failed discounts to PENDING",
        extra={"discount_set_id": set_id},
    )
    return RetryResult(reset=reset, pending_count=pending)


async def delete_set(
    store: DiscountStore, gateway: DiscountGateway, set_id: DiscountSetId,
) -> DeletionReport:
    discount_set = await store.get_set(set_id)
    if not discount_set:
        raise ResourceNotFoundError("DiscountSet", str(set_id))

    report = DeletionReport(local_deleted=len(discount_set.discounts))
    for item in await store.created_items(set_id):
        await _delete_remote(gateway, item, report)

    await store.delete_set(set_id)
    logger.info(
        f"Discount set deleted ({report.local_deleted} discounts)",
        extra={"discount_set_id": set_id},
    )
    return report


async def delete_item(
    store: DiscountStore, gateway: DiscountGateway, item_id: DiscountId,
) -> DeletionReport:
    item = await store.get_item(item_id)
    if not item:
        raise ResourceNotFoundError("Discount", str(item_id))

    report = DeletionReport(local_deleted=1)
    if item.status == DiscountStatus.CREATED.value and item.remote_id:
        await _delete_remote(gateway, item, report)

    await store.delete_item(item_id)
    return report


async def _delete_remote(
    gateway: DiscountGateway, item: Discount, report: DeletionReport,
) -> None:
    """Best-effort remote delete; outcome goes to the report, never raises."""
    report.remote_attempted += 1
    try:
        outcome = await gateway.delete_code(item.remote_id)
    except Exception as e:
        logger.warning(
            f"Failed to delete discount {item.code}: {e}",
            extra={"discount_id": item.id, "remote_id": item.remote_id},
        )
        report.remote_failures.append({"code": item.code, "error": str(e)})
        return
    if outcome.deleted:
        report.remote_deleted += 1
        return
    message = "; ".join(err.get("message", "") for err in outcome.errors) or "not deleted"
    logger.warning(
        f"Shopify did not delete discount {item.code}: {message}",
        extra={"discount_id": item.id, "remote_id": item.remote_id},
    )
    report.remote_failures.append({"code": item.code, "error": message})
