"""Generic repository base and query helpers for SQLAlchemy 2.x.

Repositories are persistence-only:

- they never commit or roll back (the Unit of Work owns the transaction);
- sorting goes through a per-repository whitelist and always ends with the
  primary key so pages are deterministic;
- updates go through an explicit ``_updatable_fields`` whitelist to prevent
  mass-assignment from request payloads.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from app.core.extensions import db

E = TypeVar("E")


# ------------------------------- Pagination ----------------------------------


@dataclass(slots=True)
class Pagination:
    """Page request.

    :param page: 1-based page number.
    :param limit: Page size.
    :param sort: Public sort tokens (``"-created_at"`` sorts descending).
    """

    page: int
    limit: int
    sort: list[str]


@dataclass(slots=True)
class Page(Generic[E]):
    """One page of results plus the total row count."""

    items: Sequence[E]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


def parse_sort_tokens(raw: Iterable[str]) -> list[tuple[str, bool]]:
    """Turn ``["-created_at", "id"]`` into ``[("created_at", True), ("id", False)]``."""
    parsed: list[tuple[str, bool]] = []
    for token in raw:
        is_desc = token.startswith("-")
        name = (token[1:] if is_desc else token).strip()
        if name:
            parsed.append((name, is_desc))
    return parsed


def apply_sorting(
    stmt: Select[Any],
    sortable_fields: Mapping[str, InstrumentedAttribute[Any]],
    tokens: Iterable[str],
    *,
    pk_attr: InstrumentedAttribute[Any] | None,
    pk_desc: bool = False,
) -> Select[Any]:
    """Apply whitelisted ``ORDER BY`` clauses followed by a PK tiebreaker.

    Unknown tokens are ignored.

    :param stmt: Base selectable.
    :param sortable_fields: Public name -> ORM attribute mapping.
    :param tokens: Public sort tokens.
    :param pk_attr: Primary-key attribute used as final tiebreaker.
    :param pk_desc: Order the tiebreaker descending (newest-first listings).
    :returns: Ordered select.
    """
    orders: list[Any] = []
    for name, is_desc in parse_sort_tokens(tokens):
        col = sortable_fields.get(name)
        if isinstance(col, InstrumentedAttribute):
            orders.append(col.desc() if is_desc else col.asc())
    if orders:
        stmt = stmt.order_by(*orders)
    if pk_attr is not None:
        stmt = stmt.order_by(pk_attr.desc() if pk_desc else pk_attr.asc())
    return stmt


def paginate_select(
    session: Session,
    stmt: Select[Any],
    *,
    page: int,
    limit: int,
    with_total: bool = True,
) -> tuple[list[Any], int]:
    """Run ``stmt`` with LIMIT/OFFSET and an optional ``COUNT(*)``.

    The count strips ``ORDER BY`` from the subquery.

    :returns: ``(items, total)``; ``total`` is 0 when ``with_total`` is false.
    """
    page = max(int(page), 1)
    limit = max(int(limit), 1)

    total = 0
    if with_total:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = int(session.execute(count_stmt).scalar_one())

    sliced = stmt.limit(limit).offset((page - 1) * limit)
    items = list(session.execute(sliced).scalars().all())
    return items, total


# ------------------------------ Base repository ------------------------------


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single aggregate root.

    Subclasses set ``model`` and may override ``_sortable_fields``,
    ``_updatable_fields`` and ``_default_eagerload``.
    """

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Injected Unit-of-Work session, else the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Extensibility ----------------------------

    def _default_eagerload(self, stmt: Select[Any]) -> Select[Any]:
        return stmt

    def _pk_attr(self) -> InstrumentedAttribute[Any] | None:
        return getattr(self.model, "id", None)

    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {}

    def _updatable_fields(self) -> set[str]:
        return set()

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so its primary key is populated."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError("BaseRepository.get requires a detectable PK attribute.")
        stmt = self._default_eagerload(select(self.model).where(pk_attr == entity_id))
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def get_for_update(self, entity_id: Any) -> E | None:
        """Load by primary key with ``SELECT ... FOR UPDATE`` (ignored by SQLite)."""
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError("BaseRepository.get_for_update requires a detectable PK.")
        stmt = self._default_eagerload(
            select(self.model).where(pk_attr == entity_id)
        ).with_for_update()
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def delete(self, instance: E) -> None:
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    # ----------------------------- Safe updates -------------------------------

    def assign_updates(
        self,
        instance: E,
        fields: Mapping[str, Any],
        *,
        strict: bool = True,
        flush: bool = True,
    ) -> E:
        """Assign whitelisted keys through ``setattr`` (runs ``@validates``).

        :param instance: Entity to mutate.
        :param fields: Public field mapping.
        :param strict: Raise ``ValueError`` on keys outside the whitelist.
        :param flush: Flush the session afterwards.
        :raises ValueError: On unknown keys when ``strict``.
        """
        allowed = self._updatable_fields()
        unknown = [k for k in fields if k not in allowed]
        if unknown and strict:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        for key, value in fields.items():
            if key in allowed:
                setattr(instance, key, value)
        if flush:
            self.flush()
        return instance

    # ------------------------------- Listing ---------------------------------

    def paginate_stmt(
        self,
        stmt: Select[Any],
        pagination: Pagination,
        *,
        newest_first: bool = False,
        with_total: bool = True,
    ) -> Page[E]:
        """Sort and paginate a prepared select for this repository's model."""
        stmt = self._default_eagerload(stmt)
        stmt = apply_sorting(
            stmt,
            self._sortable_fields(),
            pagination.sort,
            pk_attr=self._pk_attr(),
            pk_desc=newest_first,
        )
        items, total = paginate_select(
            self.session,
            stmt,
            page=pagination.page,
            limit=pagination.limit,
            with_total=with_total,
        )
        return Page(
            items=cast(list[E], items),
            total=total,
            page=pagination.page,
            limit=pagination.limit,
        )
