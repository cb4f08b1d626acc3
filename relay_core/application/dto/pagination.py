"""Cursor page shared by listing use cases."""

from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a newest-first listing; `next_cursor` is the last item's id."""

    data: List[T]
    has_more: bool
    next_cursor: Optional[str] = None

    @classmethod
    def build(cls, items: List[T], has_more: bool, cursor_of) -> "Page[T]":
        next_cursor = cursor_of(items[-1]) if has_more and items else None
        return cls(data=items, has_more=has_more, next_cursor=next_cursor)
