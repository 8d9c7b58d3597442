"""Batch Dispatcher — processes one bounded slice of a discount set per call.

Invariants:
    - At most batch_size items are claimed per call; each claimed item is
      resolved at most once (CREATED or FAILED) by this call, and only while
      this call's claim token still holds it
    - The master template is fetched once per call, never cached across calls
    - Template fetch failure of any kind is batch-level: TemplateUnavailableError
      propagates and no item status changes
    - Whatever escapes after claiming (template error, DB error, cancellation)
      returns the still-claimed items to PENDING before propagating
    - Items run strictly sequentially against the gateway
    - Per-item errors never escape: rejection → FAILED with joined field
      errors, transport/unexpected error → FAILED with the error text
    - An item already CREATED or FAILED is never claimed again

Design Decisions:
    - Counts recomputed from the store after the batch: overlapping pollers
      see each other's progress in `remaining`
"""

import logging

from app.core.batch_progress import (
    BatchOutcome, StatusCounts, format_field_errors,
    progress_message, completion_message,
)
from app.core.discount_template import DiscountTemplate
from app.core.domain_types import ClaimToken, DiscountSetId, DEFAULT_BATCH_SIZE
from app.core.errors import (
    ResourceNotFoundError, TemplateUnavailableError, ShopifyAPIError,
    ErrorContext,
)
from app.core.repository_protocols import (
    DiscountGateway, JobStore, DiscountItemLike, CodeCreated, CodeRejected,
)
from app.core.template_replicator import TemplateReplicator

logger = logging.getLogger(__name__)


class BatchDispatcher:
    """Claims pending items and creates their codes through the gateway."""

    def __init__(
        self, store: JobStore, gateway: DiscountGateway,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.store = store
        self.gateway = gateway
        self.batch_size = batch_size

    async def process_batch(self, set_id: DiscountSetId) -> BatchOutcome:
        discount_set = await self.store.get_set(set_id)
        if not discount_set:
            raise ResourceNotFoundError("DiscountSet", str(set_id))

        token, items = await self.store.claim_pending(set_id, self.batch_size)
        if not items:
            return await self._final_outcome(set_id)

        try:
            template = await self._fetch_template(set_id, discount_set.master_discount_id)
            replicator = TemplateReplicator(template)
            created = failed = 0
            for item in items:
                if await self._process_item(item, token, replicator):
                    created += 1
                else:
                    failed += 1
        except BaseException:
            released = await self.store.release_claims(token)
            if released:
                logger.warning(
                    f"Released {released} claimed discounts after batch error",
                    extra={"discount_set_id": set_id},
                )
            raise

        processed = created + failed
        remaining = await self.store.count_unfinished(set_id)
        logger.info(
            f"Batch processed for set {set_id}",
            extra={
                "discount_set_id": set_id,
                "processed": processed,
                "remaining": remaining,
            },
        )
        return BatchOutcome(
            processed=processed,
            remaining=remaining,
            message=progress_message(processed, remaining),
            created=created,
            failed=failed,
        )

    async def _fetch_template(
        self, set_id: DiscountSetId, template_ref: str,
    ) -> DiscountTemplate:
        """Fetch the master template; every failure becomes TemplateUnavailableError."""
        context = ErrorContext(discount_set_id=str(set_id))
        try:
            template = await self.gateway.fetch_template(template_ref)
        except ShopifyAPIError as e:
            context.retry_after_ms = e.context.retry_after_ms
            raise TemplateUnavailableError(template_ref, e.message, context) from e
        except Exception as e:
            logger.error(
                f"Template {template_ref} could not be read: {e!r}",
                extra={"discount_set_id": set_id},
            )
            raise TemplateUnavailableError(
                template_ref, str(e) or type(e).__name__, context,
            ) from e
        if template is None:
            raise TemplateUnavailableError(
                template_ref, "master discount no longer exists", context,
            )
        return template

    async def _process_item(
        self, item: DiscountItemLike, token: ClaimToken, replicator: TemplateReplicator,
    ) -> bool:
        """Create one code. Returns True if CREATED. Never raises for gateway errors."""
        try:
            result = await self.gateway.create_code(replicator.request_for(item.code))
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or "Unknown error"
            logger.warning(
                f"Error creating {item.code}: {message}",
                extra={"discount_id": item.id, "code": item.code},
            )
            await self.store.mark_failed(item.id, token, message)
            return False

        match result:
            case CodeCreated(remote_id=remote_id):
                if not await self.store.mark_created(item.id, token, remote_id):
                    logger.error(
                        f"Created {item.code} remotely but the claim was lost; "
                        "remote code is not tracked",
                        extra={"discount_id": item.id, "code": item.code, "remote_id": remote_id},
                    )
                    return False
                return True
            case CodeRejected(field_errors=errors):
                message = format_field_errors(errors) or "Rejected without details"
                logger.warning(
                    f"Shopify rejected {item.code}: {message}",
                    extra={"discount_id": item.id, "code": item.code},
                )
                await self.store.mark_failed(item.id, token, message)
                return False
        await self.store.mark_failed(item.id, token, "Unexpected API response")
        return False

    async def _final_outcome(self, set_id: DiscountSetId) -> BatchOutcome:
        counts = StatusCounts.from_mapping(await self.store.count_by_status(set_id))
        return BatchOutcome(
            processed=0,
            remaining=counts.remaining,
            message=(
                completion_message(counts) if counts.remaining == 0
                else progress_message(0, counts.remaining)
            ),
            created=counts.created,
            failed=counts.failed,
            counts=counts,
        )
