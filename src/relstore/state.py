"""Serialized table state: the document shape every backend reads and writes.

    {
        "idGen": 3,
        "data": {"0": {...}, "1": {...}},
        "many": {"<peer id>": {"<owner type>": [<owner id>, ...]}},
        "one":  {"<owner id>": {"<peer type>": <peer id>}}
    }
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from relstore.errors import MalformedDocumentError

logger = logging.getLogger(__name__)

IDGEN_FIELD = "idGen"
DATA_FIELD = "data"
MANY_FIELD = "many"
ONE_FIELD = "one"

RecordId = int | str

_INT_KEY = re.compile(r"-?(0|[1-9][0-9]*)")


def coerce_id(value: Any) -> RecordId:
    """Normalize a record id to the form it has after a round trip to disk.

    Object keys always come back from JSON as strings, so canonical integer
    strings ("5", "-3", but not "05" or "+5") are the same id as the int.
    Every id entering a table goes through here.
    """
    if isinstance(value, bool):
        raise TypeError(f"Invalid record id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if _INT_KEY.fullmatch(value) and value != "-0":
            return int(value)
        return value
    raise TypeError(f"Invalid record id: {value!r}")


@dataclass
class TableState:
    """In-memory form of one table document."""

    id_gen: int = 0
    data: dict[RecordId, dict] = field(default_factory=dict)
    many: dict[RecordId, dict[str, list[RecordId]]] = field(default_factory=dict)
    one: dict[RecordId, dict[str, RecordId]] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {
            IDGEN_FIELD: self.id_gen,
            DATA_FIELD: copy.deepcopy(self.data),
            MANY_FIELD: {
                peer_id: {owner_type: list(ids) for owner_type, ids in by_type.items()}
                for peer_id, by_type in self.many.items()
            },
            ONE_FIELD: {owner_id: dict(links) for owner_id, links in self.one.items()},
        }

    @classmethod
    def from_document(
        cls, document: Any, entity_type: str = "", *, strict: bool = False
    ) -> TableState:
        """Decode a stored document.

        Missing or wrong-shaped fields fall back to their empty value (and are
        logged) unless ``strict`` is set, in which case they raise
        MalformedDocumentError.
        """
        if document is None:
            return cls()
        if not isinstance(document, dict):
            _reject(entity_type, "document is not a mapping", strict)
            return cls()

        return cls(
            id_gen=_parse_id_gen(document.get(IDGEN_FIELD, 0), entity_type, strict),
            data=_parse_data(document.get(DATA_FIELD, {}), entity_type, strict),
            many=_parse_many(document.get(MANY_FIELD, {}), entity_type, strict),
            one=_parse_one(document.get(ONE_FIELD, {}), entity_type, strict),
        )


def _reject(entity_type: str, reason: str, strict: bool) -> None:
    if strict:
        raise MalformedDocumentError(entity_type, f"{entity_type}: {reason}")
    logger.warning("Ignoring malformed state in %s: %s", entity_type, reason)


def _parse_id_gen(value: Any, entity_type: str, strict: bool) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        _reject(entity_type, f"{IDGEN_FIELD} must be a non-negative integer", strict)
        return 0
    return value


def _parse_data(value: Any, entity_type: str, strict: bool) -> dict[RecordId, dict]:
    if not isinstance(value, dict):
        _reject(entity_type, f"{DATA_FIELD} must be a mapping", strict)
        return {}
    data: dict[RecordId, dict] = {}
    for key, record in value.items():
        try:
            record_id = coerce_id(key)
        except TypeError:
            _reject(entity_type, f"bad record id {key!r}", strict)
            continue
        if not isinstance(record, dict):
            _reject(entity_type, f"record {key!r} is not a mapping", strict)
            continue
        data[record_id] = record
    return data


def _parse_many(
    value: Any, entity_type: str, strict: bool
) -> dict[RecordId, dict[str, list[RecordId]]]:
    if not isinstance(value, dict):
        _reject(entity_type, f"{MANY_FIELD} must be a mapping", strict)
        return {}
    many: dict[RecordId, dict[str, list[RecordId]]] = {}
    for key, by_type in value.items():
        if not isinstance(by_type, dict):
            _reject(entity_type, f"{MANY_FIELD}[{key!r}] is not a mapping", strict)
            continue
        try:
            peer_id = coerce_id(key)
            entry = {}
            for owner_type, ids in by_type.items():
                if not isinstance(ids, list):
                    raise TypeError(f"{owner_type} ids are not a list")
                owner_ids: list[RecordId] = []
                for owner_id in map(coerce_id, ids):
                    if owner_id not in owner_ids:
                        owner_ids.append(owner_id)
                if owner_ids:
                    entry[str(owner_type)] = owner_ids
        except TypeError as e:
            _reject(entity_type, f"{MANY_FIELD}[{key!r}]: {e}", strict)
            continue
        if entry:
            many[peer_id] = entry
    return many


def _parse_one(
    value: Any, entity_type: str, strict: bool
) -> dict[RecordId, dict[str, RecordId]]:
    if not isinstance(value, dict):
        _reject(entity_type, f"{ONE_FIELD} must be a mapping", strict)
        return {}
    one: dict[RecordId, dict[str, RecordId]] = {}
    for key, links in value.items():
        if not isinstance(links, dict):
            _reject(entity_type, f"{ONE_FIELD}[{key!r}] is not a mapping", strict)
            continue
        try:
            owner_id = coerce_id(key)
            entry = {str(peer_type): coerce_id(peer_id) for peer_type, peer_id in links.items()}
        except TypeError as e:
            _reject(entity_type, f"{ONE_FIELD}[{key!r}]: {e}", strict)
            continue
        if entry:
            one[owner_id] = entry
    return one
