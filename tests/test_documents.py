"""Tests for document store backends and table state decoding."""

from __future__ import annotations

from pathlib import Path

import frontmatter
import pytest

from relstore.documents import (
    FrontmatterDocumentStore,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    decode_entity_type,
    encode_entity_type,
    open_document_store,
)
from relstore.errors import MalformedDocumentError, StoreIOError
from relstore.registry import TableRegistry
from relstore.state import TableState, coerce_id


def _document() -> dict:
    return {
        "idGen": 2,
        "data": {0: {"title": "Dune", "tags": ["sf"]}, "x": {"title": "Emma"}},
        "many": {},
        "one": {0: {"Author": 5}, "x": {"Author": "austen"}},
    }


class TestEntityTypeEncoding:
    def test_dotted_type_unchanged(self):
        assert encode_entity_type("app.models.Book") == "app.models.Book"

    def test_illegal_chars_escaped(self):
        assert encode_entity_type("a/b") == "a%2Fb"
        assert encode_entity_type("Book Club") == "Book%20Club"

    @pytest.mark.parametrize("entity_type", ["a/b", "ab", "Book Club", 'a<>:"\\|?*b', "50%", "Ünïcode"])
    def test_reversible(self, entity_type):
        assert decode_entity_type(encode_entity_type(entity_type)) == entity_type

    def test_distinct_types_get_distinct_files(self, tmp_path: Path):
        registry = TableRegistry(JsonFileDocumentStore(tmp_path))
        registry.get_instance("a/b").set({"name": "slash"})
        registry.get_instance("ab").set({"name": "plain"})
        registry.flush()

        reopened = TableRegistry(JsonFileDocumentStore(tmp_path))
        assert reopened.get_instance("a/b").get_by_id(0) == {"name": "slash"}
        assert reopened.get_instance("ab").get_by_id(0) == {"name": "plain"}
        assert reopened.store.list() == ["a/b", "ab"]


class TestCoerceId:
    def test_integer_strings_become_ints(self):
        assert coerce_id("12") == 12
        assert coerce_id("0") == 0
        assert coerce_id("-1") == -1
        assert coerce_id(12) == 12

    def test_other_strings_kept(self):
        assert coerce_id("austen") == "austen"
        assert coerce_id("05") == "05"
        assert coerce_id("+5") == "+5"
        assert coerce_id("-0") == "-0"
        assert coerce_id(" 5") == " 5"

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            coerce_id(True)
        with pytest.raises(TypeError):
            coerce_id(1.5)


class TestTableState:
    def test_none_is_empty_state(self):
        assert TableState.from_document(None) == TableState()

    def test_decodes_string_keys(self):
        state = TableState.from_document({
            "idGen": 3,
            "data": {"0": {"a": 1}, "b": {"a": 2}},
            "many": {"5": {"Book": [0, "1", 0]}},
            "one": {"0": {"Author": "5"}},
        })
        assert state.id_gen == 3
        assert state.data == {0: {"a": 1}, "b": {"a": 2}}
        assert state.many == {5: {"Book": [0, 1]}}
        assert state.one == {0: {"Author": 5}}

    def test_lenient_drops_bad_entries(self, caplog):
        state = TableState.from_document(
            {
                "idGen": -1,
                "data": {"0": {"a": 1}, "1": "not a record"},
                "many": {"5": {"Book": 0}},
                "one": "nope",
            },
            "Book",
        )
        assert state == TableState(data={0: {"a": 1}})
        assert "Ignoring malformed state in Book" in caplog.text

    def test_non_mapping_document(self):
        assert TableState.from_document(["x"], "Book") == TableState()
        with pytest.raises(MalformedDocumentError):
            TableState.from_document(["x"], "Book", strict=True)

    def test_strict_rejects_bad_record(self):
        with pytest.raises(MalformedDocumentError):
            TableState.from_document({"data": {"0": 3}}, "Book", strict=True)

    def test_to_document_is_detached(self):
        state = TableState(data={0: {"tags": ["a"]}}, one={0: {"Author": 1}})
        document = state.to_document()
        document["data"][0]["tags"].append("b")
        document["one"][0]["Author"] = 2
        assert state.data == {0: {"tags": ["a"]}}
        assert state.one == {0: {"Author": 1}}


class TestJsonFileDocumentStore:
    def test_missing_returns_none(self, tmp_path: Path):
        assert JsonFileDocumentStore(tmp_path).load("Book") is None

    def test_save_and_load(self, tmp_path: Path):
        store = JsonFileDocumentStore(tmp_path)
        store.save("app.Book", _document())
        assert (tmp_path / "app.Book.json").exists()
        assert not list(tmp_path.glob("*.tmp"))

        loaded = store.load("app.Book")
        assert loaded["idGen"] == 2
        assert loaded["data"]["0"] == {"title": "Dune", "tags": ["sf"]}
        assert TableState.from_document(loaded).one == {0: {"Author": 5}, "x": {"Author": "austen"}}

    def test_list(self, tmp_path: Path):
        store = JsonFileDocumentStore(tmp_path)
        store.save("Book", {})
        store.save("Author", {})
        assert store.list() == ["Author", "Book"]

    def test_invalid_json(self, tmp_path: Path):
        (tmp_path / "Book.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(MalformedDocumentError):
            JsonFileDocumentStore(tmp_path).load("Book")

    def test_non_object_json(self, tmp_path: Path):
        (tmp_path / "Book.json").write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(MalformedDocumentError):
            JsonFileDocumentStore(tmp_path).load("Book")

    def test_unencodable_payload(self, tmp_path: Path):
        store = JsonFileDocumentStore(tmp_path)
        with pytest.raises(StoreIOError):
            store.save("Book", {"data": {0: {"when": object()}}})
        assert not (tmp_path / "Book.json").exists()

    def test_corrupt_file_gives_empty_table(self, tmp_path: Path):
        (tmp_path / "Book.json").write_text("{not json", encoding="utf-8")
        books = TableRegistry(JsonFileDocumentStore(tmp_path)).get_instance("Book")
        assert books.get_ids() == []

    def test_non_utf8_file(self, tmp_path: Path):
        (tmp_path / "Book.json").write_bytes(b'{"data": "\xff\xfe"}')
        with pytest.raises(MalformedDocumentError):
            JsonFileDocumentStore(tmp_path).load("Book")

        books = TableRegistry(JsonFileDocumentStore(tmp_path)).get_instance("Book")
        assert books.get_ids() == []


class TestFrontmatterDocumentStore:
    def test_missing_returns_none(self, tmp_path: Path):
        assert FrontmatterDocumentStore(tmp_path).load("Book") is None

    def test_save_and_load(self, tmp_path: Path):
        store = FrontmatterDocumentStore(tmp_path)
        store.save("app.Book", _document())

        assert not list(tmp_path.glob("*.tmp"))
        post = frontmatter.load(str(tmp_path / "app.Book.md"))
        assert "# app.Book" in post.content
        assert "2 records" in post.content

        state = TableState.from_document(store.load("app.Book"))
        assert state.id_gen == 2
        assert state.data == {0: {"title": "Dune", "tags": ["sf"]}, "x": {"title": "Emma"}}
        assert state.one == {0: {"Author": 5}, "x": {"Author": "austen"}}

    def test_invalid_yaml(self, tmp_path: Path):
        (tmp_path / "Book.md").write_text("---\ndata: [unclosed\n---\n", encoding="utf-8")
        with pytest.raises(MalformedDocumentError):
            FrontmatterDocumentStore(tmp_path).load("Book")

    def test_non_utf8_file(self, tmp_path: Path):
        (tmp_path / "Book.md").write_bytes(b"---\ndata: \xff\xfe\n---\n")
        with pytest.raises(MalformedDocumentError):
            FrontmatterDocumentStore(tmp_path).load("Book")

        books = TableRegistry(FrontmatterDocumentStore(tmp_path)).get_instance("Book")
        assert books.get_ids() == []

    def test_overwrite_replaces_file(self, tmp_path: Path):
        store = FrontmatterDocumentStore(tmp_path)
        store.save("Book", _document())
        store.save("Book", {"idGen": 0, "data": {}, "many": {}, "one": {}})
        assert [p.name for p in tmp_path.iterdir()] == ["Book.md"]
        assert store.load("Book")["data"] == {}

    def test_registry_round_trip(self, tmp_path: Path):
        registry = TableRegistry(FrontmatterDocumentStore(tmp_path))
        authors = registry.get_instance("Author")
        books = registry.get_instance("Book")
        authors.set({"name": "Tolkien"})
        authors.has_many(0, books, [books.set({"title": "Hobbit"})])
        registry.flush()

        reopened = TableRegistry(FrontmatterDocumentStore(tmp_path))
        assert reopened.get_instance("Book").get_by_id(0, cascade=True) == {
            "name": "Tolkien",
            "title": "Hobbit",
        }
        assert reopened.verify() == []


class TestInMemoryDocumentStore:
    def test_documents_are_json_normalized(self):
        store = InMemoryDocumentStore()
        store.save("Book", {"data": {0: {"t": (1, 2)}}})
        assert store.load("Book") == {"data": {"0": {"t": [1, 2]}}}
        assert store.list() == ["Book"]

    def test_loads_are_independent(self):
        store = InMemoryDocumentStore({"Book": {"data": {}}})
        store.load("Book")["data"]["0"] = {}
        assert store.load("Book") == {"data": {}}


class TestBackendsAgree:
    @pytest.mark.parametrize("backend", ["json", "markdown", "memory"])
    def test_list_returns_entity_type_ids(self, backend, tmp_path: Path):
        store = open_document_store(backend, tmp_path)
        for entity_type in ["Book Club", "a/b", "app.Book"]:
            store.save(entity_type, {"idGen": 0, "data": {}, "many": {}, "one": {}})
        assert sorted(store.list()) == ["Book Club", "a/b", "app.Book"]


class TestOpenDocumentStore:
    def test_backends(self, tmp_path: Path):
        assert isinstance(open_document_store("json", tmp_path), JsonFileDocumentStore)
        assert isinstance(open_document_store("markdown", tmp_path), FrontmatterDocumentStore)
        assert isinstance(open_document_store("memory", tmp_path), InMemoryDocumentStore)

    def test_unknown_backend(self, tmp_path: Path):
        with pytest.raises(ValueError):
            open_document_store("s3", tmp_path)
