"""Template Routes — browse the store's code discounts usable as master templates."""

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import current_shop
from app.config import Settings, get_settings
from app.core.repository_protocols import DiscountGateway
from app.infrastructure.shopify_client import get_gateway
from app.schemas.discount_set import TemplateSummaryResponse

router = APIRouter(
    prefix="/api/v1/templates", tags=["templates"],
    dependencies=[Depends(current_shop)],
)


@router.get("", response_model=list[TemplateSummaryResponse])
async def list_templates(
    limit: int | None = Query(None, ge=1, le=250),
    gateway: DiscountGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    summaries = await gateway.list_templates(limit or settings.template_list_limit)
    return [TemplateSummaryResponse.model_validate(s) for s in summaries]
