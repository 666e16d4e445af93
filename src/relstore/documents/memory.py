"""Process-local document store, for tests and throwaway registries."""

from __future__ import annotations

import json
from typing import Any


class InMemoryDocumentStore:
    """Keeps documents in a dict.

    Documents pass through a JSON round-trip on save so that what comes back
    from load looks exactly like what a file backend would return.
    """

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, str] = {}
        for entity_type, document in (documents or {}).items():
            self.save(entity_type, document)

    def load(self, entity_type: str) -> dict[str, Any] | None:
        raw = self._documents.get(entity_type)
        return json.loads(raw) if raw is not None else None

    def save(self, entity_type: str, document: dict[str, Any]) -> None:
        self._documents[entity_type] = json.dumps(document, ensure_ascii=False)

    def list(self) -> list[str]:
        return list(self._documents)
