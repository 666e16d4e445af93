"""Tests for the python -m relstore entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from relstore.__main__ import main
from relstore.documents import JsonFileDocumentStore
from relstore.registry import TableRegistry


@pytest.fixture
def store_dir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RELSTORE_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("RELSTORE_BACKEND", "json")
    monkeypatch.setenv("RELSTORE_STRICT_LOAD", "false")
    return tmp_path / "data"


@pytest.fixture
def populated(store_dir: Path) -> Path:
    registry = TableRegistry(JsonFileDocumentStore(store_dir))
    authors = registry.get_instance("Author")
    books = registry.get_instance("Book")
    authors.set({"name": "Tolkien"})
    books.has_one(books.set({"title": "Hobbit"}), authors, 0)
    registry.flush()
    return store_dir


class TestMain:
    def test_types(self, populated: Path, capsys):
        assert main(["types"]) == 0
        assert capsys.readouterr().out.split() == ["Author", "Book"]

    def test_show(self, populated: Path, capsys):
        assert main(["show", "Book"]) == 0
        document = json.loads(capsys.readouterr().out)
        assert document["data"] == {"0": {"title": "Hobbit"}}
        assert document["one"] == {"0": {"Author": 0}}

    def test_show_requires_type(self, populated: Path, capsys):
        assert main(["show"]) == 1
        assert "Usage" in capsys.readouterr().out

    def test_check_consistent(self, populated: Path, capsys):
        assert main(["check"]) == 0
        assert "0 problem(s)" in capsys.readouterr().out

    def test_check_reports_problems(self, store_dir: Path, capsys):
        store_dir.mkdir(parents=True)
        (store_dir / "Book.json").write_text(
            json.dumps({"idGen": 1, "data": {"0": {}}, "many": {}, "one": {"0": {"Author": 7}}}),
            encoding="utf-8",
        )
        assert main(["check", "Book"]) == 1
        out = capsys.readouterr().out
        assert "Book[0] -> Author[7]" in out
        assert "1 problem(s)" in out

    def test_types_with_escaped_names(self, store_dir: Path, capsys):
        registry = TableRegistry(JsonFileDocumentStore(store_dir))
        members = registry.get_instance("Member")
        clubs = registry.get_instance("Book Club")
        clubs.set({"name": "Inklings"})
        members.has_one(members.set({"name": "Lewis"}), clubs, 0)
        registry.flush()

        assert main(["types"]) == 0
        assert capsys.readouterr().out.splitlines() == ["Book Club", "Member"]
        assert main(["check"]) == 0
        assert "2 table(s) checked, 0 problem(s)" in capsys.readouterr().out

    def test_unknown_command(self, store_dir: Path, capsys):
        assert main(["vacuum"]) == 1
        assert "Usage" in capsys.readouterr().out
