"""Relation index: "one" links and their materialized "many" inverse.

Each table owns one RelationIndex. A link ``owner --one--> peer`` lives in two
indices at once:

    owner table:  one[owner_id][peer_type] = peer_id
    peer table:   many[peer_id][owner_type] = [owner_id, ...]

RecordTable keeps the two sides mirrored. The methods here are the only code
that writes either map; a table edits its peers through them, never through
the underlying dicts.
"""

from __future__ import annotations

from collections.abc import Iterator

from relstore.state import RecordId, TableState


class RelationIndex:
    """One table's half of every relation it takes part in."""

    def __init__(
        self,
        one: dict[RecordId, dict[str, RecordId]] | None = None,
        many: dict[RecordId, dict[str, list[RecordId]]] | None = None,
    ) -> None:
        self._one = one if one is not None else {}
        self._many = many if many is not None else {}

    # ── "one" side ────────────────────────────────────────────

    def link(self, owner_id: RecordId, peer_type: str, peer_id: RecordId) -> RecordId | None:
        """Point the (owner_id, peer_type) slot at peer_id. Returns the previous peer id."""
        links = self._one.setdefault(owner_id, {})
        previous = links.get(peer_type)
        links[peer_type] = peer_id
        return previous

    def unlink(
        self, owner_id: RecordId, peer_type: str, expected: RecordId | None = None
    ) -> RecordId | None:
        """Clear one slot. With ``expected`` set, only clear it if it points there."""
        links = self._one.get(owner_id)
        if not links or peer_type not in links:
            return None
        if expected is not None and links[peer_type] != expected:
            return None
        removed = links.pop(peer_type)
        if not links:
            del self._one[owner_id]
        return removed

    def pop_links(self, owner_id: RecordId) -> dict[str, RecordId]:
        return self._one.pop(owner_id, {})

    def peer_of(self, owner_id: RecordId, peer_type: str) -> RecordId | None:
        return self._one.get(owner_id, {}).get(peer_type)

    def links_of(self, owner_id: RecordId) -> dict[str, RecordId]:
        return dict(self._one.get(owner_id, {}))

    def iter_links(self) -> Iterator[tuple[RecordId, str, RecordId]]:
        for owner_id, links in list(self._one.items()):
            for peer_type, peer_id in list(links.items()):
                yield owner_id, peer_type, peer_id

    # ── "many" side ───────────────────────────────────────────

    def add_dependent(self, peer_id: RecordId, owner_type: str, owner_id: RecordId) -> bool:
        """Record that owner_id (of owner_type) points at peer_id. Idempotent."""
        owner_ids = self._many.setdefault(peer_id, {}).setdefault(owner_type, [])
        if owner_id in owner_ids:
            return False
        owner_ids.append(owner_id)
        return True

    def remove_dependent(self, peer_id: RecordId, owner_type: str, owner_id: RecordId) -> bool:
        by_type = self._many.get(peer_id)
        if not by_type or owner_id not in by_type.get(owner_type, []):
            return False
        by_type[owner_type].remove(owner_id)
        if not by_type[owner_type]:
            del by_type[owner_type]
        if not by_type:
            del self._many[peer_id]
        return True

    def pop_dependents(self, peer_id: RecordId) -> dict[str, list[RecordId]]:
        return self._many.pop(peer_id, {})

    def dependents(self, peer_id: RecordId, owner_type: str) -> list[RecordId]:
        return list(self._many.get(peer_id, {}).get(owner_type, []))

    def iter_dependents(self) -> Iterator[tuple[RecordId, str, RecordId]]:
        for peer_id, by_type in list(self._many.items()):
            for owner_type, owner_ids in list(by_type.items()):
                for owner_id in list(owner_ids):
                    yield peer_id, owner_type, owner_id

    # ── Persistence ───────────────────────────────────────────

    @classmethod
    def from_state(cls, state: TableState) -> RelationIndex:
        return cls(one=state.one, many=state.many)

    def export(self) -> tuple[dict, dict]:
        """Detached copies of (one, many) for serialization."""
        one = {owner_id: dict(links) for owner_id, links in self._one.items()}
        many = {
            peer_id: {owner_type: list(ids) for owner_type, ids in by_type.items()}
            for peer_id, by_type in self._many.items()
        }
        return one, many
