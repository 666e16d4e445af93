"""DocumentStore protocol and shared helpers."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote, unquote

# Characters left as-is in file names; everything else is percent-encoded.
_FILENAME_SAFE = "._-"


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol that all table document backends must implement."""

    def load(self, entity_type: str) -> dict[str, Any] | None:
        """Return the stored document, or None if the type has none yet."""
        ...

    def save(self, entity_type: str, document: dict[str, Any]) -> None:
        """Replace the stored document for the type."""
        ...

    def list(self) -> list[str]:
        """Entity types with a stored document."""
        ...


def encode_entity_type(entity_type: str) -> str:
    """File-name-safe, reversible form of an entity type id.

    ``app.Book`` stays as is, ``a/b`` becomes ``a%2Fb``.
    """
    return quote(entity_type, safe=_FILENAME_SAFE)


def decode_entity_type(stem: str) -> str:
    return unquote(stem)
