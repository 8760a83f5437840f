# comments in English; reST docstrings strict
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PaginationIn:
    """
    Input pagination contract.

    :param page: 1-based page number.
    :type page: int
    :param per_page: Page size (> 0).
    :type per_page: int
    """

    page: int = 1
    per_page: int = 10


@dataclass(frozen=True, slots=True)
class PageMeta:
    """
    Output pagination metadata.

    :param page: Current page (1-based).
    :type page: int
    :param per_page: Page size.
    :type per_page: int
    :param total: Total rows available.
    :type total: int
    :param total_pages: Number of pages for ``per_page``.
    :type total_pages: int
    """

    page: int
    per_page: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
