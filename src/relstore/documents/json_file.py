"""One JSON file per entity type: ``<store_dir>/<entity type>.json``."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from relstore.documents.base import decode_entity_type, encode_entity_type
from relstore.errors import MalformedDocumentError, StoreIOError

logger = logging.getLogger(__name__)


class JsonFileDocumentStore:
    """Read/write table documents as JSON files under ``root``."""

    suffix = ".json"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, entity_type: str) -> Path:
        return self.root / f"{encode_entity_type(entity_type)}{self.suffix}"

    def load(self, entity_type: str) -> dict[str, Any] | None:
        path = self.path_for(entity_type)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(entity_type, f"{path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StoreIOError(entity_type, f"Cannot read {path}: {e}") from e
        try:
            document = json.loads(text)
        except ValueError as e:
            raise MalformedDocumentError(entity_type, f"Invalid JSON in {path}: {e}") from e
        if not isinstance(document, dict):
            raise MalformedDocumentError(entity_type, f"{path} does not hold a JSON object")
        return document

    def save(self, entity_type: str, document: dict[str, Any]) -> None:
        path = self.path_for(entity_type)
        tmp = path.with_name(path.name + ".tmp")
        try:
            payload = json.dumps(document, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreIOError(entity_type, f"Cannot encode {entity_type}: {e}") from e
        try:
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StoreIOError(entity_type, f"Cannot write {path}: {e}") from e
        logger.debug("Wrote %s (%d bytes)", path, len(payload))

    def list(self) -> list[str]:
        return sorted(decode_entity_type(p.stem) for p in self.root.glob(f"*{self.suffix}"))
