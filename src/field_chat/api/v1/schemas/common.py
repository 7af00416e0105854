from __future__ import annotations

from typing import Callable, Generic, Sequence, TypeVar

from pydantic import BaseModel

T = TypeVar("T")
R = TypeVar("R")


class Page(BaseModel, Generic[T]):
    """One keyset page; ``next_cursor`` is set only when the page came back full."""

    items: list[T]  # type: ignore[type-var]
    next_cursor: str | None = None

    @classmethod
    def build(
        cls,
        rows: Sequence[R],
        limit: int,
        *,
        item: Callable[[R], T],
        cursor: Callable[[R], str],
    ) -> Page[T]:
        return cls(
            items=[item(r) for r in rows],
            next_cursor=cursor(rows[-1]) if rows and len(rows) == limit else None,
        )
