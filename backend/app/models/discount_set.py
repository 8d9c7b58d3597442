"""DiscountSet ORM — a named batch of codes submitted together against one master template.

Invariants:
    - id is UUID primary key
    - Created once at submission, after the master template was validated; never updated
    - master_discount_id is the template every owned Discount replicates
    - Deleting a set deletes its discounts (ORM cascade + ON DELETE CASCADE)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DiscountSet(Base):
    """Job group — owns 0..N Discount items."""
    __tablename__ = "discount_sets"
    __table_args__ = (
        Index("ix_discount_sets_shop", "shop"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    shop: Mapped[str] = mapped_column(String(255), nullable=False)
    master_discount_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    discounts: Mapped[list["Discount"]] = relationship(
        "Discount", back_populates="discount_set",
        cascade="all, delete-orphan", passive_deletes=True,
        lazy="selectin", order_by="Discount.created_at.desc()",
    )
