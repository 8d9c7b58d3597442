"""Discount Store — SQLAlchemy implementation of the Job Store.

Invariants:
    - The store is the only source of truth for progress
    - claim_pending is atomic per row: a conditional UPDATE moves rows to
      IN_PROGRESS under a fresh claim token, and only rows carrying that token
      are returned — two overlapping claims never share an item
    - Claims older than claim_ttl are claimable again (crashed/abandoned pollers)
    - mark_created / mark_failed only resolve rows still IN_PROGRESS under the
      caller's claim token: a poller whose claim expired and was taken over
      cannot overwrite the new owner's result
    - Mutating calls used during processing commit immediately (claim, mark_*,
      release, reset, delete); create_set/create_items only flush — the
      submission service owns that transaction

Design Decisions:
    - Bulk UPDATE/DELETE statements instead of per-row ORM mutation:
      one round-trip per operation, independent of the session identity map
    - Deterministic claim order: (created_at, id)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update, delete, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import (
    DiscountSetId, DiscountId, ClaimToken, DiscountStatus, UNFINISHED_STATUSES,
)
from app.models.discount import Discount
from app.models.discount_set import DiscountSet

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TTL = timedelta(minutes=5)


class DiscountStore:
    """Job Store over one AsyncSession."""

    def __init__(self, db: AsyncSession, claim_ttl: timedelta = DEFAULT_CLAIM_TTL):
        self.db = db
        self.claim_ttl = claim_ttl

    # ─── Submission ──────────────────────────────────────────────

    async def create_set(self, name: str, shop: str, template_ref: str) -> DiscountSetId:
        discount_set = DiscountSet(name=name, shop=shop, master_discount_id=template_ref)
        self.db.add(discount_set)
        await self.db.flush()
        return DiscountSetId(discount_set.id)

    async def create_items(
        self, set_id: DiscountSetId, shop: str, template_ref: str, codes: list[str],
    ) -> None:
        """Bulk insert, all PENDING. No dedup beyond the caller's."""
        self.db.add_all([
            Discount(
                shop=shop,
                code=code,
                master_discount_id=template_ref,
                discount_set_id=set_id,
                status=DiscountStatus.PENDING.value,
            )
            for code in codes
        ])
        await self.db.flush()

    async def existing_codes(self, shop: str, codes: list[str]) -> set[str]:
        """Codes from `codes` already persisted for the shop."""
        if not codes:
            return set()
        found: set[str] = set()
        # chunked to stay under bind-parameter limits
        for start in range(0, len(codes), 500):
            chunk = codes[start:start + 500]
            result = await self.db.execute(
                select(Discount.code).where(
                    Discount.shop == shop, Discount.code.in_(chunk),
                ),
            )
            found.update(result.scalars().all())
        return found

    # ─── Reads ───────────────────────────────────────────────────

    async def get_set(self, set_id: DiscountSetId) -> DiscountSet | None:
        result = await self.db.execute(
            select(DiscountSet).where(DiscountSet.id == set_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def get_item(self, item_id: DiscountId) -> Discount | None:
        result = await self.db.execute(
            select(Discount).where(Discount.id == item_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def list_sets(self, shop: str) -> list[DiscountSet]:
        """Sets of a shop, newest first, with their discounts loaded."""
        result = await self.db.execute(
            select(DiscountSet)
            .where(DiscountSet.shop == shop)
            .order_by(DiscountSet.created_at.desc(), DiscountSet.id)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def created_items(self, set_id: DiscountSetId) -> list[Discount]:
        result = await self.db.execute(
            select(Discount).where(
                Discount.discount_set_id == set_id,
                Discount.status == DiscountStatus.CREATED.value,
                Discount.remote_id.is_not(None),
            ).execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def count_by_status(self, set_id: DiscountSetId) -> dict[DiscountStatus, int]:
        result = await self.db.execute(
            select(Discount.status, func.count())
            .where(Discount.discount_set_id == set_id)
            .group_by(Discount.status),
        )
        counts = {status: 0 for status in DiscountStatus}
        for status, count in result.all():
            counts[DiscountStatus(status)] = count
        return counts

    async def count_unfinished(self, set_id: DiscountSetId) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Discount).where(
                Discount.discount_set_id == set_id,
                Discount.status.in_([s.value for s in UNFINISHED_STATUSES]),
            ),
        )
        return result.scalar_one()

    async def count_pending(self, set_id: DiscountSetId) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Discount).where(
                Discount.discount_set_id == set_id,
                Discount.status == DiscountStatus.PENDING.value,
            ),
        )
        return result.scalar_one()

    # ─── Claim protocol ──────────────────────────────────────────

    async def claim_pending(
        self, set_id: DiscountSetId, limit: int,
    ) -> tuple[ClaimToken, list[Discount]]:
        """Atomically move up to `limit` claimable rows to IN_PROGRESS.

        Returns the claim token and the rows it now owns (possibly empty).
        """
        token = ClaimToken(uuid.uuid4())
        now = datetime.now(timezone.utc)
        claimable = self._claimable(now)

        candidates = await self.db.execute(
            select(Discount.id)
            .where(Discount.discount_set_id == set_id, claimable)
            .order_by(Discount.created_at, Discount.id)
            .limit(limit)
            .with_for_update(skip_locked=True),
        )
        ids = list(candidates.scalars().all())
        if not ids:
            await self.db.commit()
            return token, []

        # Re-check claimability in the UPDATE: a concurrent claimer that got
        # there first leaves these rows out of our token.
        await self.db.execute(
            update(Discount)
            .where(Discount.id.in_(ids), claimable)
            .values(
                status=DiscountStatus.IN_PROGRESS.value,
                claim_token=token,
                claimed_at=now,
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()

        owned = await self.db.execute(
            select(Discount)
            .where(Discount.claim_token == token)
            .order_by(Discount.created_at, Discount.id)
            .execution_options(populate_existing=True),
        )
        return token, list(owned.scalars().all())

    async def release_claims(self, token: ClaimToken) -> int:
        """Return rows still IN_PROGRESS under `token` to PENDING."""
        result = await self.db.execute(
            update(Discount)
            .where(
                Discount.claim_token == token,
                Discount.status == DiscountStatus.IN_PROGRESS.value,
            )
            .values(
                status=DiscountStatus.PENDING.value, claim_token=None, claimed_at=None,
            )
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        return result.rowcount or 0

    async def mark_created(
        self, item_id: DiscountId, token: ClaimToken, remote_id: str,
    ) -> bool:
        return await self._resolve(
            item_id, token, status=DiscountStatus.CREATED, remote_id=remote_id, error_message=None,
        )

    async def mark_failed(
        self, item_id: DiscountId, token: ClaimToken, message: str,
    ) -> bool:
        return await self._resolve(
            item_id, token, status=DiscountStatus.FAILED, remote_id=None,
            error_message=message or "Unknown error",
        )

    async def _resolve(
        self, item_id: DiscountId, token: ClaimToken, status: DiscountStatus, **values,
    ) -> bool:
        """Resolve one claimed row. Returns False when the claim no longer holds it."""
        result = await self.db.execute(
            update(Discount)
            .where(
                Discount.id == item_id,
                Discount.status == DiscountStatus.IN_PROGRESS.value,
                Discount.claim_token == token,
            )
            .values(status=status.value, claim_token=None, claimed_at=None, **values)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        if not result.rowcount:
            logger.warning(
                f"Discount {item_id} no longer held by claim {token}; {status.value} not recorded",
                extra={"discount_id": item_id},
            )
        return bool(result.rowcount)

    def _claimable(self, now: datetime):
        stale_before = now - self.claim_ttl
        return or_(
            Discount.status == DiscountStatus.PENDING.value,
            and_(
                Discount.status == DiscountStatus.IN_PROGRESS.value,
                Discount.claimed_at < stale_before,
            ),
        )

    # ─── Retry / deletion ────────────────────────────────────────

    async def reset_failed_to_pending(self, set_id: DiscountSetId) -> int:
        """FAILED → PENDING with error cleared. Returns rows reset."""
        result = await self.db.execute(
            update(Discount)
            .where(
                Discount.discount_set_id == set_id,
                Discount.status == DiscountStatus.FAILED.value,
            )
            .values(status=DiscountStatus.PENDING.value, error_message=None)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        return result.rowcount or 0

    async def delete_set(self, set_id: DiscountSetId) -> None:
        """Delete the set and every discount it owns."""
        await self.db.execute(
            delete(Discount)
            .where(Discount.discount_set_id == set_id)
            .execution_options(synchronize_session=False),
        )
        await self.db.execute(
            delete(DiscountSet)
            .where(DiscountSet.id == set_id)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        self.db.expunge_all()

    async def delete_item(self, item_id: DiscountId) -> None:
        await self.db.execute(
            delete(Discount)
            .where(Discount.id == item_id)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        self.db.expunge_all()
