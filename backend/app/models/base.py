"""Mixins and column types shared by the commerce models (typed 2.0)."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column

# Currency amounts: two decimal places, returned as ``Decimal``
Money = Numeric(12, 2, asdecimal=True)

ZERO = Decimal("0.00")


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support.

    :param value: Datetime loaded from the database (SQLite drops the offset).
    :type value: datetime | None
    :returns: Timezone-aware datetime or ``None``.
    :rtype: datetime | None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TimestampMixin:
    """Add database-managed ``created_at`` / ``updated_at`` columns.

    Attributes
    ----------
    created_at:
        Set by the database on insert.
    updated_at:
        Set on insert and refreshed on every ORM update.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class PKMixin:
    """Integer surrogate primary key named ``id``."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class ReprMixin:
    """Compact ``<ClassName id=...>`` representation for logs and debugging."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={getattr(self, 'id', None)}>"
