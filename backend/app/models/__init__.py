"""ORM Models — SQLAlchemy declarative models for the Job Store.

Invariants:
    - All models inherit from Base (db/base.py)
    - DiscountSet is the aggregate root; Discount rows are scoped by shop and optionally by set

Design Decisions:
    - One file per entity
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from app.models.discount_set import DiscountSet  # noqa: F401
from app.models.discount import Discount  # noqa: F401
