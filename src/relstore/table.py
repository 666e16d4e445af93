"""RecordTable: the in-memory store for one entity type.

A table owns its records, its id generator and its half of every relation
(see relations.py). Tables never touch each other's storage directly: peer
tables are resolved through the registry and edited through their
RelationIndex.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from relstore.relations import RelationIndex
from relstore.state import RecordId, TableState, coerce_id

if TYPE_CHECKING:
    from relstore.registry import TableRegistry

logger = logging.getLogger(__name__)


def deep_merge(base: Mapping, override: Mapping) -> dict:
    """Merge two records. Keys in ``override`` win; nested mappings merge recursively."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class RecordTable:
    """Records of one entity type plus the relations they take part in."""

    def __init__(
        self,
        entity_type: str,
        registry: TableRegistry,
        state: TableState | None = None,
    ) -> None:
        state = state or TableState()
        self.entity_type = entity_type
        self._registry = registry
        self._id_gen = state.id_gen
        self._data: dict[RecordId, dict] = state.data
        self.relations = RelationIndex.from_state(state)

    def __repr__(self) -> str:
        return f"RecordTable({self.entity_type!r}, records={len(self._data)})"

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, record_id: object) -> bool:
        try:
            return coerce_id(record_id) in self._data
        except TypeError:
            return False

    def _touch(self, *entity_types: str) -> None:
        for entity_type in entity_types or (self.entity_type,):
            self._registry.mark_dirty(entity_type)

    def _resolve(self, peer: Any) -> RecordTable:
        if isinstance(peer, RecordTable):
            return peer
        return self._registry.get_instance(peer)

    # ── Records ───────────────────────────────────────────────

    def set(self, payload: Mapping, record_id: RecordId | None = None) -> RecordId:
        """Create (no id) or overwrite (given id) a record. Returns its id.

        Caller-supplied ids never advance the generator. Canonical integer
        strings are the same id as the int (``"5"`` is ``5``).
        """
        if record_id is None:
            record_id = self._id_gen
            self._id_gen += 1
        else:
            record_id = coerce_id(record_id)
        self._data[record_id] = copy.deepcopy(dict(payload))
        self._touch()
        return record_id

    def get_by_id(self, record_id: RecordId, cascade: bool = False) -> dict | None:
        """Return a copy of the record, or None if it does not exist.

        With ``cascade`` the records this one links to (and theirs, transitively)
        are merged beneath it; the record's own fields take precedence.
        """
        return self._read(coerce_id(record_id), cascade, set())

    def _read(self, record_id: RecordId, cascade: bool, seen: set) -> dict | None:
        record = self._data.get(record_id)
        if record is None:
            return None
        result = copy.deepcopy(record)
        if not cascade:
            return result

        seen.add((self.entity_type, record_id))
        for peer_type, peer_id in self.relations.links_of(record_id).items():
            if (peer_type, peer_id) in seen:
                continue
            related = self._registry.get_instance(peer_type)._read(peer_id, True, seen)
            if related is None:
                logger.debug(
                    "%s[%r] links to missing %s[%r]", self.entity_type, record_id, peer_type, peer_id
                )
                continue
            result = deep_merge(related, result)
        return result

    def get_ids(self) -> list[RecordId]:
        return list(self._data)

    def get_all(self) -> dict[RecordId, dict]:
        return copy.deepcopy(self._data)

    def delete(self, record_id: RecordId, cascade: bool = False) -> None:
        """Remove a record and every relation entry that refers to it.

        Records that point at this one are deleted too when ``cascade`` is set,
        otherwise only their link is cleared. Deleting a missing id is a no-op
        apart from relation cleanup.
        """
        record_id = coerce_id(record_id)
        # Links from this record: drop it from each peer's inverse list.
        for peer_type, peer_id in self.relations.pop_links(record_id).items():
            peer = self._registry.get_instance(peer_type)
            if peer.relations.remove_dependent(peer_id, self.entity_type, record_id):
                self._touch(peer_type)

        # Links to this record. Popped before recursing so cycles terminate.
        for owner_type, owner_ids in self.relations.pop_dependents(record_id).items():
            owner = self._registry.get_instance(owner_type)
            for owner_id in owner_ids:
                if cascade:
                    owner.delete(owner_id, cascade=True)
                else:
                    owner.relations.unlink(owner_id, self.entity_type, expected=record_id)
            self._touch(owner_type)

        if self._data.pop(record_id, None) is not None:
            logger.debug("Deleted %s[%r] (cascade=%s)", self.entity_type, record_id, cascade)
        self._touch()

    # ── Relations ─────────────────────────────────────────────

    def has_one(self, owner_id: RecordId, peer: Any, peer_id: RecordId) -> None:
        """Link owner_id to exactly one peer_id of the peer's type.

        Re-linking the same slot replaces the previous peer on both sides.
        """
        owner_id, peer_id = coerce_id(owner_id), coerce_id(peer_id)
        peer_table = self._resolve(peer)
        previous = self.relations.link(owner_id, peer_table.entity_type, peer_id)
        if previous is not None and previous != peer_id:
            peer_table.relations.remove_dependent(previous, self.entity_type, owner_id)
        peer_table.relations.add_dependent(peer_id, self.entity_type, owner_id)
        self._touch(peer_table.entity_type, self.entity_type)

    def has_many(self, owner_id: RecordId, peer: Any, peer_ids: Iterable[RecordId]) -> None:
        """Make every record in peer_ids link (has_one) to owner_id."""
        peer_table = self._resolve(peer)
        for peer_id in peer_ids:
            peer_table.has_one(peer_id, self, owner_id)

    def get_all_which_has_one(
        self, foreign_id: RecordId, peer: Any, cascade: bool = False
    ) -> dict[RecordId, dict]:
        """Records of this table whose link to the peer's type is foreign_id."""
        foreign_id = coerce_id(foreign_id)
        peer_table = self._resolve(peer)
        result: dict[RecordId, dict] = {}
        for record_id in peer_table.relations.dependents(foreign_id, self.entity_type):
            record = self.get_by_id(record_id, cascade)
            if record is not None:
                result[record_id] = record
        return result

    def related_id(self, owner_id: RecordId, peer: Any) -> RecordId | None:
        peer_type = peer.entity_type if isinstance(peer, RecordTable) else self._registry.type_id(peer)
        return self.relations.peer_of(coerce_id(owner_id), peer_type)

    # ── Persistence ───────────────────────────────────────────

    def snapshot(self) -> TableState:
        one, many = self.relations.export()
        return TableState(
            id_gen=self._id_gen,
            data=copy.deepcopy(self._data),
            many=many,
            one=one,
        )
