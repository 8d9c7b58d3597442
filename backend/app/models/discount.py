"""Discount ORM — one code's creation attempt and its outcome.

Invariants:
    - (shop, code) is unique regardless of set
    - status = CREATED     ⇔ remote_id set,     error_message null
    - status = FAILED      ⇔ error_message set, remote_id null
    - status = PENDING     ⇔ remote_id and error_message null
    - status = IN_PROGRESS ⇔ claim_token set,   remote_id and error_message null
    - master_discount_id equals the owning set's master_discount_id
    - discount_set_id is nullable: a Discount may outlive no set

Design Decisions:
    - status stored as String(20) holding DiscountStatus values
    - claim_token/claimed_at make the claim step an explicit state transition;
      a claim older than the configured TTL is claimable again
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import DiscountStatus
from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Discount(Base):
    """Job item — created PENDING in bulk, resolved once per processing attempt."""
    __tablename__ = "discounts"
    __table_args__ = (
        UniqueConstraint("shop", "code", name="uq_discounts_shop_code"),
        Index("ix_discounts_shop", "shop"),
        Index("ix_discounts_remote_id", "remote_id"),
        Index("ix_discounts_set_status", "discount_set_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    shop: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(255), nullable=False)
    master_discount_id: Mapped[str] = mapped_column(String(255), nullable=False)
    discount_set_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("discount_sets.id", ondelete="CASCADE"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DiscountStatus.PENDING.value,
    )
    remote_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    claim_token: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    discount_set: Mapped[Optional["DiscountSet"]] = relationship(
        "DiscountSet", back_populates="discounts",
    )
