"""Slice ranked results into pages."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from easy_search.domain.errors import InvalidQueryError
from easy_search.domain.model import PageInfo


T = TypeVar("T")


def validate_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise InvalidQueryError(f"page must be a positive integer, got {page}")
    if page_size < 1:
        raise InvalidQueryError(f"pageSize must be a positive integer, got {page_size}")


def paginate(items: Sequence[T], page: int, page_size: int) -> tuple[list[T], int]:
    """Return the requested page and the total item count.

    Pages past the end are empty; ``total`` always reflects the full list.

    Examples:
        >>> paginate(list(range(5)), page=3, page_size=10)
        ([], 5)
        >>> paginate(list(range(5)), page=2, page_size=2)
        ([2, 3], 5)
    """
    validate_paging(page, page_size)
    start = (page - 1) * page_size
    return list(items[start : start + page_size]), len(items)


def build_page_info(total: int, page: int, page_size: int) -> PageInfo:
    return PageInfo.build(total=total, page=page, page_size=page_size)


def empty_page_info(page: int, page_size: int) -> PageInfo:
    """Zero-valued page info for collections that failed or had nothing to search."""
    return PageInfo.build(total=0, page=page, page_size=page_size)
