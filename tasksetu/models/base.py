"""
Base model class and mixins shared by all TaskSetu tables.

WHY: Every table gets the same integer key and audit timestamps, and every
constraint gets a predictable name so Alembic migrations can refer to it.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase


# WHY: Deterministic constraint names keep autogenerated migrations stable
# across PostgreSQL and SQLite.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for all TaskSetu models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    """
    Adds created_at and updated_at.

    Timestamps are naive UTC, matching the expiry columns the membership
    lifecycle compares against datetime.utcnow().
    """

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PrimaryKeyMixin:
    """Adds an auto-incrementing integer primary key."""

    id = Column(Integer, primary_key=True, index=True)


def enum_values(enum_cls):
    """Persist str enums by value ("org_admin") rather than by member name."""
    return [member.value for member in enum_cls]
