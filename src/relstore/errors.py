"""Exceptions raised by relstore."""

from __future__ import annotations


class RelstoreError(Exception):
    """Base exception for relstore operations."""

    pass


class StoreIOError(RelstoreError):
    """Raised when a document store cannot read or write a table document."""

    def __init__(self, entity_type: str, message: str = ""):
        self.entity_type = entity_type
        super().__init__(message or f"Document store failure for {entity_type}")


class MalformedDocumentError(RelstoreError):
    """Raised when a stored document cannot be decoded into table state."""

    def __init__(self, entity_type: str, message: str = ""):
        self.entity_type = entity_type
        super().__init__(message or f"Malformed document for {entity_type}")


class FlushError(RelstoreError):
    """Raised after a flush in which one or more tables failed to persist."""

    def __init__(self, failures: dict[str, Exception], flushed: list[str]):
        self.failures = failures
        self.flushed = flushed
        super().__init__(f"Failed to flush {sorted(failures)}")
