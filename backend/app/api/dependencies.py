"""API Dependencies — FastAPI providers shared by the discount routes.

Invariants:
    - The tenant (shop) is always the configured store domain: the gateway holds
      credentials for that store only
    - An X-Shop-Domain header naming any other shop is rejected with 403 before
      a set is read, written or sent to Shopify
    - One DiscountStore per request, bound to the request's DB session
"""

from datetime import timedelta

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.core.errors import ShopMismatchError
from app.infrastructure.database import get_db
from app.services.discount_store import DiscountStore


def current_shop(
    x_shop_domain: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    configured = settings.shopify_store_domain
    requested = (x_shop_domain or "").strip()
    if requested and requested.lower() != configured.lower():
        raise ShopMismatchError(requested, configured)
    return configured


def get_store(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DiscountStore:
    return DiscountStore(db, claim_ttl=timedelta(seconds=settings.claim_ttl_seconds))
