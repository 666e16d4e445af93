"""TableRegistry: one RecordTable per entity type, plus dirty tracking.

The registry is an explicit object owned by the application: build it once
(``open_registry()`` or ``TableRegistry(store)``) and pass it around. Tables
are created lazily on first ``get_instance`` and persisted by ``flush``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from relstore.errors import FlushError, MalformedDocumentError, StoreIOError
from relstore.state import TableState
from relstore.table import RecordTable

if TYPE_CHECKING:
    from relstore.config import RelstoreConfig
    from relstore.documents.base import DocumentStore

logger = logging.getLogger(__name__)


def entity_type_id(entity: Any) -> str:
    """Entity type id for a string, a class or an instance of a class."""
    if isinstance(entity, str):
        return entity
    cls = entity if isinstance(entity, type) else type(entity)
    return f"{cls.__module__}.{cls.__qualname__}"


class DirtySet:
    """Entity types with mutations not yet flushed."""

    def __init__(self) -> None:
        self._types: dict[str, None] = {}

    def add(self, entity_type: str) -> None:
        self._types[entity_type] = None

    def discard(self, entity_type: str) -> None:
        self._types.pop(entity_type, None)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._types))

    def __len__(self) -> int:
        return len(self._types)


class TableRegistry:
    """Resolves entity types to their (singleton) RecordTable."""

    def __init__(self, store: DocumentStore, *, strict_load: bool = False) -> None:
        self.store = store
        self.strict_load = strict_load
        self.dirty = DirtySet()
        self._tables: dict[str, RecordTable] = {}
        self._lock = threading.RLock()

    @staticmethod
    def type_id(entity: Any) -> str:
        return entity_type_id(entity)

    def get_instance(self, entity: Any) -> RecordTable:
        """Return the table for an entity type, loading it on first access."""
        entity_type = entity_type_id(entity)
        table = self._tables.get(entity_type)
        if table is not None:
            return table
        with self._lock:
            if entity_type not in self._tables:
                state = self._load_state(entity_type)
                self._tables[entity_type] = RecordTable(entity_type, self, state)
                logger.info("Loaded table %s (%d records)", entity_type, len(state.data))
            return self._tables[entity_type]

    def _load_state(self, entity_type: str) -> TableState:
        try:
            document = self.store.load(entity_type)
            return TableState.from_document(document, entity_type, strict=self.strict_load)
        except (StoreIOError, MalformedDocumentError) as e:
            if self.strict_load:
                raise
            logger.warning("Could not load %s, starting empty: %s", entity_type, e)
            return TableState()

    def loaded_types(self) -> list[str]:
        return list(self._tables)

    def mark_dirty(self, entity_type: str) -> None:
        self.dirty.add(entity_type)

    def is_dirty(self, entity: Any) -> bool:
        return entity_type_id(entity) in self.dirty

    # ── Persistence ───────────────────────────────────────────

    def flush(self) -> list[str]:
        """Persist every dirty table. Returns the entity types written.

        Each table is attempted even if an earlier one fails; failed tables stay
        dirty and a FlushError listing them is raised at the end.
        """
        with self._lock:
            flushed: list[str] = []
            failures: dict[str, Exception] = {}
            for entity_type in self.dirty:
                table = self._tables.get(entity_type)
                if table is None:
                    self.dirty.discard(entity_type)
                    continue
                try:
                    self.store.save(entity_type, table.snapshot().to_document())
                except Exception as e:
                    logger.error("Failed to flush %s: %s", entity_type, e)
                    failures[entity_type] = e
                    continue
                self.dirty.discard(entity_type)
                flushed.append(entity_type)

            if flushed:
                logger.debug("Flushed %d table(s): %s", len(flushed), ", ".join(flushed))
            if failures:
                raise FlushError(failures, flushed)
            return flushed

    # ── Consistency check ─────────────────────────────────────

    def verify(self) -> list[str]:
        """Check that every relation is mirrored on both sides.

        Peer tables referenced by loaded tables are loaded as needed. Returns a
        list of problems, empty when consistent.
        """
        problems: list[str] = []
        checked: set[str] = set()
        pending = self.loaded_types()
        while pending:
            entity_type = pending.pop()
            if entity_type in checked:
                continue
            checked.add(entity_type)
            table = self.get_instance(entity_type)

            for owner_id, peer_type, peer_id in table.relations.iter_links():
                peer = self.get_instance(peer_type)
                pending.append(peer_type)
                if owner_id not in peer.relations.dependents(peer_id, entity_type):
                    problems.append(
                        f"{entity_type}[{owner_id!r}] -> {peer_type}[{peer_id!r}] "
                        f"missing from {peer_type} many index"
                    )

            for peer_id, owner_type, owner_id in table.relations.iter_dependents():
                owner = self.get_instance(owner_type)
                pending.append(owner_type)
                linked = owner.relations.peer_of(owner_id, entity_type)
                if linked != peer_id:
                    problems.append(
                        f"{entity_type}[{peer_id!r}] lists {owner_type}[{owner_id!r}] "
                        f"but its link is {linked!r}"
                    )
        return problems


def open_registry(config: RelstoreConfig | None = None) -> TableRegistry:
    """Build a registry backed by the store described in ``config``."""
    from relstore.config import load_config
    from relstore.documents import open_document_store

    config = config or load_config()
    store = open_document_store(config.backend, config.store_dir)
    return TableRegistry(store, strict_load=config.strict_load)
