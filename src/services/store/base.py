"""Record store interface consumed by the intake services.

The store is a thin, transactional record service: each call is one
atomic statement against one table.  Implementations must surface
unique-constraint violations and empty single-row lookups as the typed
errors below so callers never inspect engine-specific error codes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

Row = dict[str, Any]


class StoreError(Exception):
    """Unclassified backing-store failure."""


class UniqueViolation(StoreError):
    """A write collided with a unique constraint."""


class NoRowFound(StoreError):
    """A single-row lookup matched nothing."""


@runtime_checkable
class RecordStore(Protocol):
    """Async record store interface."""

    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: Sequence[str],
        returning: Sequence[str] | None = None,
    ) -> Row: ...

    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        returning: Sequence[str] | None = None,
    ) -> list[Row]: ...

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]: ...

    async def select_one(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> Row: ...

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
