"""Discount Routes — single-code operations.

Invariants:
    - A PENDING or FAILED item is deleted locally without any Shopify call
    - A CREATED item is deleted from Shopify first (best-effort), then locally
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.dependencies import current_shop, get_store
from app.core.domain_types import DiscountId
from app.core.errors import ResourceNotFoundError
from app.core.repository_protocols import DiscountGateway
from app.infrastructure.shopify_client import get_gateway
from app.schemas.discount_set import DeletionResponse
from app.services.discount_store import DiscountStore
from app.services.retry_and_delete import delete_item

router = APIRouter(prefix="/api/v1/discounts", tags=["discounts"])


@router.delete("/{item_id}", response_model=DeletionResponse)
async def delete_discount(
    item_id: UUID,
    shop: str = Depends(current_shop),
    store: DiscountStore = Depends(get_store),
    gateway: DiscountGateway = Depends(get_gateway),
):
    item = await store.get_item(DiscountId(item_id))
    if not item or item.shop != shop:
        raise ResourceNotFoundError("Discount", str(item_id))
    report = await delete_item(store, gateway, DiscountId(item_id))
    return DeletionResponse(
        message="Discount deleted successfully", **report.as_dict(),
    )
