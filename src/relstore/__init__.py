"""relstore: per-entity-type document tables with mirrored relations.

Each entity type is one RecordTable backed by one document. Tables are
obtained from a TableRegistry, linked with ``has_one``/``has_many`` and written
back with ``registry.flush()``:

    registry = open_registry()
    authors = registry.get_instance("Author")
    books = registry.get_instance("Book")

    tolkien = authors.set({"name": "Tolkien"})
    hobbit = books.set({"title": "The Hobbit"})
    books.has_one(hobbit, authors, tolkien)

    books.get_by_id(hobbit, cascade=True)   # {"name": "Tolkien", "title": "The Hobbit"}
    registry.flush()
"""

from relstore.errors import FlushError, MalformedDocumentError, RelstoreError, StoreIOError
from relstore.registry import DirtySet, TableRegistry, entity_type_id, open_registry
from relstore.table import RecordTable

__all__ = [
    "DirtySet",
    "FlushError",
    "MalformedDocumentError",
    "RecordTable",
    "RelstoreError",
    "StoreIOError",
    "TableRegistry",
    "entity_type_id",
    "open_registry",
]
