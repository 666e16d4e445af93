"""Document store backends.

    json      one ``<type>.json`` file per entity type
    markdown  one ``<type>.md`` file per entity type, state in YAML frontmatter
    memory    process-local, nothing touches disk
"""

from __future__ import annotations

from pathlib import Path

from relstore.documents.base import DocumentStore, decode_entity_type, encode_entity_type
from relstore.documents.json_file import JsonFileDocumentStore
from relstore.documents.markdown import FrontmatterDocumentStore
from relstore.documents.memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "FrontmatterDocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "decode_entity_type",
    "encode_entity_type",
    "open_document_store",
]


def open_document_store(backend: str, root: Path) -> DocumentStore:
    """Create the backend named by ``backend``."""
    if backend == "json":
        return JsonFileDocumentStore(root)
    if backend == "markdown":
        return FrontmatterDocumentStore(root)
    if backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown document store backend: {backend!r}")
