"""Entry point: python -m relstore [types|show TYPE|check [TYPE ...]]

- "types": List entity types that have a stored document
- "show":  Print one table's stored state as JSON
- "check": Load tables and report relations that are not mirrored
"""

from __future__ import annotations

import json
import logging
import sys

from relstore.config import load_config
from relstore.registry import open_registry


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _usage() -> int:
    print("Usage: python -m relstore [types|show TYPE|check [TYPE ...]]")
    print("  types  List stored entity types")
    print("  show   Print a table's state as JSON")
    print("  check  Report relations missing their mirror entry")
    return 1


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    cmd = args[0] if args else "types"

    config = load_config()
    _setup_logging(config.log_level)
    registry = open_registry(config)

    if cmd == "types":
        for entity_type in registry.store.list():
            print(entity_type)
        return 0

    if cmd == "show":
        if len(args) != 2:
            return _usage()
        state = registry.get_instance(args[1]).snapshot()
        print(json.dumps(state.to_document(), indent=2, ensure_ascii=False))
        return 0

    if cmd == "check":
        for entity_type in args[1:] or registry.store.list():
            registry.get_instance(entity_type)
        problems = registry.verify()
        for problem in problems:
            print(problem)
        print(f"{len(registry.loaded_types())} table(s) checked, {len(problems)} problem(s)")
        return 1 if problems else 0

    return _usage()


if __name__ == "__main__":
    sys.exit(main())
