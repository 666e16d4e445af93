"""Markdown documents with the table state in YAML frontmatter.

Layout of ``<store_dir>/<entity type>.md``:

    ---
    idGen: 2
    data:
      0: {title: Dune}
      1: {title: Emma}
    many: {}
    one: {}
    ---

    # app.models.Book

    2 records
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import frontmatter
import yaml

from relstore.documents.base import decode_entity_type, encode_entity_type
from relstore.errors import MalformedDocumentError, StoreIOError

logger = logging.getLogger(__name__)


class FrontmatterDocumentStore:
    """Read/write table documents as frontmatter Markdown files under ``root``."""

    suffix = ".md"

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
            post = frontmatter.loads(text)
        except yaml.YAMLError as e:
            raise MalformedDocumentError(entity_type, f"Invalid frontmatter in {path}: {e}") from e
        return dict(post.metadata)

    def save(self, entity_type: str, document: dict[str, Any]) -> None:
        path = self.path_for(entity_type)
        body = f"# {entity_type}\n\n{len(document.get('data', {}))} records\n"
        post = frontmatter.Post(body, **document)
        try:
            text = frontmatter.dumps(post, sort_keys=False)
        except yaml.YAMLError as e:
            raise StoreIOError(entity_type, f"Cannot encode {entity_type}: {e}") from e
        tmp = path.with_name(path.name + ".tmp")
        try:
            tmp.write_text(text + "\n", encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StoreIOError(entity_type, f"Cannot write {path}: {e}") from e
        logger.debug("Wrote %s", path)

    def list(self) -> list[str]:
        return sorted(decode_entity_type(p.stem) for p in self.root.glob(f"*{self.suffix}"))
