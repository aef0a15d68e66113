"""Process-local record store enforcing the relational schema's rules.

Used for tests and local development.  Every operation runs under one
:class:`asyncio.Lock`, so each call is atomic the way a single SQL
statement is: a batch insert that violates a constraint writes nothing.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from collections.abc import Iterable, Mapping, Sequence
from typing import Any
from uuid import uuid4

import structlog

from src.services.store.base import NoRowFound, Row, StoreError, UniqueViolation
from src.services.store.schema import TABLES, TableSchema

logger = structlog.get_logger(__name__)


class InMemoryRecordStore:
    """Dict-backed implementation of :class:`RecordStore`."""

    __slots__ = ("_lock", "_rows", "_sequences", "_tables")

    def __init__(self, tables: Mapping[str, TableSchema] | None = None) -> None:
        self._tables = dict(tables or TABLES)
        self._rows: dict[str, list[Row]] = {name: [] for name in self._tables}
        self._sequences: dict[str, itertools.count] = {
            name: itertools.count(1) for name, schema in self._tables.items() if schema.sequence
        }
        self._lock = asyncio.Lock()

    # -- helpers -----------------------------------------------------------

    def _schema(self, table: str) -> TableSchema:
        try:
            return self._tables[table]
        except KeyError:
            raise StoreError(f"Unknown table {table!r}") from None

    @staticmethod
    def _project(row: Row, columns: Sequence[str] | None) -> Row:
        if columns is None:
            return copy.deepcopy(row)
        return {column: copy.deepcopy(row.get(column)) for column in columns}

    @staticmethod
    def _matches(row: Row, filters: Mapping[str, Any] | None) -> bool:
        if not filters:
            return True
        return all(row.get(column) == value for column, value in filters.items())

    def _check_unique(self, schema: TableSchema, candidate: Row, others: Iterable[Row]) -> None:
        for key in schema.unique:
            values = tuple(candidate.get(column) for column in key)
            if any(value is None for value in values):
                continue
            for other in others:
                if other is candidate:
                    continue
                if tuple(other.get(column) for column in key) == values:
                    raise UniqueViolation(
                        f"duplicate key value violates unique constraint on {schema.name}({', '.join(key)})"
                    )

    def _check_foreign_keys(self, schema: TableSchema, candidate: Row) -> None:
        for column, parent in schema.foreign_keys.items():
            value = candidate.get(column)
            if value is None:
                raise StoreError(f"null value in column {column!r} of {schema.name}")
            if not any(row["id"] == value for row in self._rows[parent]):
                raise StoreError(f"insert on {schema.name} violates foreign key {column!r} -> {parent}")

    def _build_row(self, schema: TableSchema, values: Mapping[str, Any]) -> Row:
        row: Row = {"id": uuid4().hex}
        for column, factory in schema.defaults.items():
            row[column] = factory()
        # Explicit None overrides column defaults, as in SQL.
        row.update(copy.deepcopy(dict(values)))
        if schema.sequence:
            row[schema.sequence] = next(self._sequences[schema.name])
        return row

    def _cascade_delete(self, schema: TableSchema, removed: list[Row]) -> None:
        removed_ids = {row["id"] for row in removed}
        for child_table, column in schema.cascades:
            children = [row for row in self._rows[child_table] if row.get(column) in removed_ids]
            if not children:
                continue
            self._rows[child_table] = [
                row for row in self._rows[child_table] if row.get(column) not in removed_ids
            ]
            self._cascade_delete(self._schema(child_table), children)

    # -- RecordStore interface ---------------------------------------------

    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: Sequence[str],
        returning: Sequence[str] | None = None,
    ) -> Row:
        schema = self._schema(table)
        async with self._lock:
            rows = self._rows[table]
            key = tuple(row.get(column) for column in on_conflict)
            for existing in rows:
                if tuple(existing.get(column) for column in on_conflict) == key:
                    merged = {**existing, **copy.deepcopy(dict(row))}
                    self._check_unique(schema, merged, (r for r in rows if r is not existing))
                    existing.update(merged)
                    if schema.touch_on_update:
                        existing[schema.touch_on_update] = schema.defaults[schema.touch_on_update]()
                    return self._project(existing, returning)

            new_row = self._build_row(schema, row)
            self._check_unique(schema, new_row, rows)
            self._check_foreign_keys(schema, new_row)
            rows.append(new_row)
            return self._project(new_row, returning)

    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        returning: Sequence[str] | None = None,
    ) -> list[Row]:
        schema = self._schema(table)
        async with self._lock:
            existing = self._rows[table]
            staged: list[Row] = []
            for values in rows:
                candidate = self._build_row(schema, values)
                self._check_unique(schema, candidate, [*existing, *staged])
                self._check_foreign_keys(schema, candidate)
                staged.append(candidate)
            existing.extend(staged)
            if returning is None:
                return []
            return [self._project(row, returning) for row in staged]

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        self._schema(table)
        async with self._lock:
            matched = [
                (index, row) for index, row in enumerate(self._rows[table]) if self._matches(row, filters)
            ]
            if order_by is not None:
                # Insertion order breaks ties so equal timestamps stay deterministic.
                matched.sort(
                    key=lambda pair: (pair[1].get(order_by) is not None, pair[1].get(order_by), pair[0]),
                    reverse=descending,
                )
            return [self._project(row, columns) for _, row in matched]

    async def select_one(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> Row:
        matched = await self.select(table, columns=columns, filters=filters)
        if len(matched) != 1:
            raise NoRowFound(f"Expected exactly one row in {table}, found {len(matched)}")
        return matched[0]

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> int:
        schema = self._schema(table)
        async with self._lock:
            removed = [row for row in self._rows[table] if self._matches(row, filters)]
            if not removed:
                return 0
            self._rows[table] = [row for row in self._rows[table] if not self._matches(row, filters)]
            self._cascade_delete(schema, removed)
            logger.debug("store.memory.deleted", table=table, count=len(removed))
            return len(removed)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    # -- introspection -------------------------------------------------------

    def count(self, table: str) -> int:
        """Return the number of rows currently held in *table*."""
        return len(self._rows[self._schema(table).name])
