"""Generic repository over pydantic entities with optional JSON-file persistence."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar
from uuid import UUID

from loguru import logger
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from rolnet.errors import NotFoundError
from rolnet.store.entities import Entity, utcnow
from rolnet.store.query import QueryBuilder

EntityT = TypeVar("EntityT", bound=Entity)
ItemT = TypeVar("ItemT")

DEFAULT_PAGE_SIZE = 10


class StoreError(Exception):
    """Reading or writing the backing file failed."""


@dataclass
class Page(Generic[ItemT]):
    """One page of a filtered, ordered list."""

    items: list[ItemT] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, "")
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, UUID):
        value = str(value)
    return (1, value)


class Repository(Generic[EntityT]):
    """CRUD, filtered list and count over one entity type.

    Every read takes an explicit ``include_deleted`` keyword; soft-deleted rows
    are never silently included or excluded.
    """

    def __init__(self, entity_type: type[EntityT], table: str, context: StoreContext | None = None):
        self.entity_type = entity_type
        self.table = table
        self._context = context
        self._rows: dict[UUID, EntityT] = {}

    def new_query_builder(self) -> QueryBuilder:
        return QueryBuilder()

    def insert(self, entity: EntityT) -> EntityT:
        now = utcnow()
        row = entity.model_copy(deep=True, update={"created_at": now, "updated_at": now, "deleted_at": None})
        if row.id in self._rows:
            raise StoreError(f"{self.table}: duplicate id {row.id}")
        self._rows[row.id] = row
        self._commit(row.id, None)
        return row.model_copy(deep=True)

    def update(self, entity_id: UUID, entity: EntityT) -> EntityT:
        current = self._rows.get(entity_id)
        if current is None or current.is_deleted:
            raise NotFoundError(f"{self.table}: entity {entity_id} not found")
        row = entity.model_copy(
            deep=True,
            update={"id": entity_id, "created_at": current.created_at, "updated_at": utcnow(), "deleted_at": None},
        )
        self._rows[entity_id] = row
        self._commit(entity_id, current)
        return row.model_copy(deep=True)

    def delete(self, entity_id: UUID, hard: bool = False) -> None:
        """Soft-delete (default) or remove the row."""
        current = self._rows.get(entity_id)
        if current is None or current.is_deleted:
            raise NotFoundError(f"{self.table}: entity {entity_id} not found")
        if hard:
            del self._rows[entity_id]
        else:
            self._rows[entity_id] = current.model_copy(update={"deleted_at": utcnow()})
        self._commit(entity_id, current)

    def get_by_id(
        self, entity_id: UUID, *, include_deleted: bool, query: QueryBuilder | None = None
    ) -> EntityT:
        row = self._rows.get(entity_id)
        if row is None or not self._visible(row, include_deleted, query):
            raise NotFoundError(f"{self.table}: entity {entity_id} not found")
        return row.model_copy(deep=True)

    def get_list(
        self,
        order_by: str = "",
        direction: str = "asc",
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        include_deleted: bool,
        query: QueryBuilder | None = None,
    ) -> list[EntityT]:
        """Return one ordered page. ``order_by=""`` keeps insertion order."""
        page = max(page, 1)
        page_size = page_size if page_size > 0 else DEFAULT_PAGE_SIZE
        rows = [r for r in self._rows.values() if self._visible(r, include_deleted, query)]
        if order_by:
            if order_by not in self.entity_type.model_fields:
                raise StoreError(f"{self.table}: cannot order by unknown field '{order_by}'")
            rows.sort(key=lambda r: _sort_key(getattr(r, order_by)), reverse=direction.lower() == "desc")
        start = (page - 1) * page_size
        return [r.model_copy(deep=True) for r in rows[start : start + page_size]]

    def get_all(self, *, include_deleted: bool, query: QueryBuilder | None = None) -> list[EntityT]:
        """Unpaginated ``get_list`` in insertion order."""
        return [r.model_copy(deep=True) for r in self._rows.values() if self._visible(r, include_deleted, query)]

    def count(self, *, include_deleted: bool, query: QueryBuilder | None = None) -> int:
        return sum(1 for r in self._rows.values() if self._visible(r, include_deleted, query))

    @staticmethod
    def _visible(row: EntityT, include_deleted: bool, query: QueryBuilder | None) -> bool:
        if row.is_deleted and not include_deleted:
            return False
        return query is None or query.matches(row)

    def _commit(self, entity_id: UUID, previous: EntityT | None) -> None:
        """Persist the change to ``entity_id``; on failure put ``previous`` back."""
        if self._context is None:
            return
        try:
            self._context.save()
        except StoreError:
            if previous is None:
                self._rows.pop(entity_id, None)
            else:
                self._rows[entity_id] = previous
            raise

    def _dump(self) -> list[dict[str, Any]]:
        return [r.model_dump(mode="json") for r in self._rows.values()]

    def _load(self, rows: list[Any]) -> None:
        adapter = TypeAdapter(list[self.entity_type])  # type: ignore[name-defined]
        self._rows = {r.id: r for r in adapter.validate_python(rows)}


class StoreContext:
    """Groups repositories persisted together in one JSON document.

    Without a path the context is purely in-memory.
    """

    def __init__(self, path: Path | None = None):
        self.path = path
        self._repositories: dict[str, Repository[Any]] = {}
        self._lock = threading.Lock()

    def repository(self, entity_type: type[EntityT], table: str) -> Repository[EntityT]:
        repo: Repository[EntityT] = Repository(entity_type, table, self)
        self._repositories[table] = repo
        return repo

    def load(self) -> None:
        """Populate all registered repositories from the backing file, if any."""
        if self.path is None or not self.path.exists():
            return
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            for table, repo in self._repositories.items():
                repo._load(document.get(table, []))
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            raise StoreError(f"Failed to load store from {self.path}: {e}") from e
        logger.debug(f"Loaded store from {self.path}")

    def save(self) -> None:
        if self.path is None:
            return
        with self._lock:
            document = {table: repo._dump() for table, repo in self._repositories.items()}
            tmp = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
                os.replace(tmp, self.path)
            except OSError as e:
                raise StoreError(f"Failed to write store to {self.path}: {e}") from e
