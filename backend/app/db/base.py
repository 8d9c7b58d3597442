"""SQLAlchemy Declarative Base — shared base class for the Job Store models.

Invariants:
    - DiscountSet and Discount inherit from Base
    - Base.metadata is what alembic autogenerate and test fixtures create from
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all BulkCode ORM models."""
    pass
