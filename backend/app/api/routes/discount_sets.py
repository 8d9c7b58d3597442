"""Discount Set Routes — submit, process, retry, delete and list discount sets.

Invariants:
    - Routes never contain business logic (delegate to services/)
    - process_batch handles at most settings.batch_size codes per request;
      the client repeats the call until complete is true
    - A set is only visible to the shop that owns it (404 otherwise)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.dependencies import current_shop, get_store
from app.config import Settings, get_settings
from app.core.batch_progress import StatusCounts
from app.core.domain_types import DiscountSetId
from app.core.errors import ResourceNotFoundError
from app.core.repository_protocols import DiscountGateway
from app.infrastructure.shopify_client import get_gateway
from app.models.discount_set import DiscountSet
from app.schemas.discount_set import (
    DiscountSetCreate, SubmissionResponse, ProcessBatchResponse,
    RetryResponse, DeletionResponse, DiscountSetResponse, DiscountResponse,
    StatusCountsResponse,
)
from app.services.batch_dispatcher import BatchDispatcher
from app.services.discount_store import DiscountStore
from app.services.retry_and_delete import retry_failed, delete_set
from app.services.submit_codes import submit_codes

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/discount-sets", tags=["discount-sets"])


async def get_set_or_404(
    set_id: UUID, shop: str, store: DiscountStore,
) -> DiscountSet:
    discount_set = await store.get_set(DiscountSetId(set_id))
    if not discount_set or discount_set.shop != shop:
        raise ResourceNotFoundError("DiscountSet", str(set_id))
    return discount_set


@router.post(
    "", response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_discount_set(
    body: DiscountSetCreate,
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
    gateway: DiscountGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Validate the master template and queue every code as PENDING."""
    result = await submit_codes(
        store, gateway,
        shop=shop,
        template_ref=body.template_ref,
        codes=body.all_codes(),
        set_name=body.set_name,
        max_codes=settings.max_codes_per_submission,
    )
    return SubmissionResponse(
        discount_set_id=result.discount_set_id,
        total_codes=result.total_codes,
        skipped_codes=result.skipped_codes,
        needs_processing=result.total_codes > 0,
        message=result.message,
    )


@router.post("/{set_id}/process", response_model=ProcessBatchResponse)
async def process_discount_set(
    set_id: UUID,
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
    gateway: DiscountGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Process one batch of pending codes."""
    await get_set_or_404(set_id, shop, store)
    dispatcher = BatchDispatcher(store, gateway, batch_size=settings.batch_size)
    outcome = await dispatcher.process_batch(DiscountSetId(set_id))
    return ProcessBatchResponse(
        processed=outcome.processed,
        remaining=outcome.remaining,
        complete=outcome.complete,
        message=outcome.message,
        created=outcome.created,
        failed=outcome.failed,
        counts=(
            StatusCountsResponse(**outcome.counts.as_dict()) if outcome.counts else None
        ),
    )


@router.post("/{set_id}/retry", response_model=RetryResponse)
async def retry_discount_set(
    set_id: UUID,
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
):
    """Queue every FAILED code of the set for another attempt."""
    await get_set_or_404(set_id, shop, store)
    result = await retry_failed(store, DiscountSetId(set_id))
    return RetryResponse(
        discount_set_id=set_id,
        pending_count=result.pending_count,
        needs_processing=result.needs_processing,
        message=result.message,
    )


@router.delete("/{set_id}", response_model=DeletionResponse)
async def delete_discount_set(
    set_id: UUID,
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
    gateway: DiscountGateway = Depends(get_gateway),
):
    """Delete created codes from Shopify (best-effort), then the set and its discounts."""
    await get_set_or_404(set_id, shop, store)
    report = await delete_set(store, gateway, DiscountSetId(set_id))
    return DeletionResponse(
        message="Discount set deleted successfully", **report.as_dict(),
    )


@router.get("", response_model=list[DiscountSetResponse])
async def list_discount_sets(
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
):
    """All sets of the shop, newest first, each with its discounts and counts."""
    return [_set_response(s) for s in await store.list_sets(shop)]


@router.get("/{set_id}", response_model=DiscountSetResponse)
async def get_discount_set(
    set_id: UUID,
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
):
    return _set_response(await get_set_or_404(set_id, shop, store))


def _set_response(discount_set: DiscountSet) -> DiscountSetResponse:
    tally: dict[str, int] = {}
    for d in discount_set.discounts:
        tally[d.status] = tally.get(d.status, 0) + 1
    counts = StatusCounts.from_mapping(tally)
    return DiscountSetResponse(
        id=discount_set.id,
        name=discount_set.name,
        shop=discount_set.shop,
        master_discount_id=discount_set.master_discount_id,
        created_at=discount_set.created_at,
        counts=StatusCountsResponse(**counts.as_dict()),
        discounts=[DiscountResponse.model_validate(d) for d in discount_set.discounts],
    )
