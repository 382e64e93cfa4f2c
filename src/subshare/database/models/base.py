"""
Declarative base and shared column helpers for SubShare models.
"""

from sqlalchemy import Enum as SQLEnum, Numeric
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def enum_type(enum_cls, name: str) -> SQLEnum:
    """Enum column type that stores the lowercase member values."""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


def money() -> Numeric:
    """NUMERIC(12,2) column type returned as Decimal."""
    return Numeric(12, 2, asdecimal=True)
