"""Tests for the family-graph CLI."""

import json

import pytest
from typer.testing import CliRunner

from family_graph.cli import app
from family_graph.graph.store import GraphStore
from family_graph.persistence import JsonFileSnapshotRepository, decode_token

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    monkeypatch.setenv("FAMILY_GRAPH_LOG_LEVEL", "ERROR")
    # Wide enough that Rich never wraps ids or names in tables
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture
def storage(tmp_path):
    return tmp_path / "graph"


def invoke(storage, *args):
    return runner.invoke(app, ["--storage", str(storage), *args])


def load(storage) -> GraphStore:
    return GraphStore(repository=JsonFileSnapshotRepository(storage))


def by_name(store, name):
    return next(p for p in store.people if p.given_name == name)


class TestBasicCommands:
    """Tests for show, add-parent, add-child and rename."""

    def test_show_fresh_graph(self, storage):
        result = invoke(storage, "show")

        assert result.exit_code == 0
        assert "Self" in result.output
        assert "1 people" in result.output

    def test_add_parent(self, storage):
        result = invoke(storage, "add-parent", "root", "--given", "Ada", "--family", "Byron")
        assert result.exit_code == 0
        assert "Added parent" in result.output

        store = load(storage)
        parent = by_name(store, "Ada")
        assert parent.generation == 1
        assert parent.family_name == "Byron"
        assert store.root.parent_ids == (parent.id,)

    def test_add_child(self, storage):
        invoke(storage, "add-child", "root", "--given", "Kim")

        store = load(storage)
        child = by_name(store, "Kim")
        assert child.generation == -1
        assert child.parent_ids == (store.root_id,)

    def test_rename(self, storage):
        invoke(storage, "add-parent", "root")
        root_id = load(storage).root_id

        result = invoke(storage, "rename", root_id, "--given", "Sam")

        assert result.exit_code == 0
        assert load(storage).root.given_name == "Sam"

    def test_unknown_person(self, storage):
        result = invoke(storage, "add-parent", "nobody")

        assert result.exit_code == 1
        assert "No person with id nobody" in result.output


class TestPartnerCommands:
    """Tests for marry and divorce."""

    @pytest.fixture
    def parents(self, storage):
        invoke(storage, "add-parent", "root", "--given", "Mum")
        invoke(storage, "add-parent", "root", "--given", "Dad")
        store = load(storage)
        return by_name(store, "Mum").id, by_name(store, "Dad").id

    def test_marry_is_mirrored(self, storage, parents):
        mum, dad = parents

        result = invoke(storage, "marry", mum, dad, "--year", "1970", "--country", "Wales")
        assert result.exit_code == 0

        store = load(storage)
        assert store.get(mum).marriages[0].partner_id == dad
        assert store.get(dad).marriages[0].partner_id == mum
        assert store.get(dad).marriages[0].country == "Wales"

    def test_divorce(self, storage, parents):
        mum, dad = parents
        invoke(storage, "divorce", dad, mum)

        assert load(storage).get(mum).divorces[0].partner_id == dad

    def test_invalid_year(self, storage, parents):
        mum, dad = parents
        result = invoke(storage, "marry", mum, dad, "--year", "1700")

        assert result.exit_code == 1
        assert load(storage).get(mum).marriages == ()

    def test_cannot_marry_self(self, storage, parents):
        mum, _ = parents
        assert invoke(storage, "marry", mum, mum).exit_code == 1


class TestDestructiveCommands:
    """Tests for delete and clear."""

    def test_delete(self, storage):
        invoke(storage, "add-parent", "root", "--given", "Ada")
        ada = by_name(load(storage), "Ada")

        result = invoke(storage, "delete", ada.id, "--yes")

        assert result.exit_code == 0
        store = load(storage)
        assert store.get(ada.id) is None
        assert store.root.parent_ids is None

    def test_delete_requires_confirmation(self, storage):
        invoke(storage, "add-parent", "root", "--given", "Ada")
        ada = by_name(load(storage), "Ada")

        result = runner.invoke(app, ["--storage", str(storage), "delete", ada.id], input="n\n")

        assert result.exit_code != 0
        assert load(storage).get(ada.id) is not None

    def test_clear(self, storage):
        invoke(storage, "add-parent", "root")
        invoke(storage, "add-child", "root")

        result = invoke(storage, "clear", "--yes")

        assert result.exit_code == 0
        assert len(load(storage).people) == 1


class TestQueryCommands:
    """Tests for eligible, layout and check."""

    def test_eligible_parents(self, storage):
        invoke(storage, "add-parent", "root", "--given", "Ada")

        result = invoke(storage, "eligible", "root", "--relation", "parents")

        assert result.exit_code == 0
        assert "Ada" in result.output

    def test_no_eligible_children(self, storage):
        result = invoke(storage, "eligible", "root", "--relation", "children")

        assert result.exit_code == 0
        assert "No eligible children" in result.output

    def test_layout_json(self, storage):
        invoke(storage, "add-parent", "root")

        result = invoke(storage, "layout", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data["nodes"]) == 2
        assert data["width"] == 400
        assert data["height"] == 2 * 180 + 200
        assert [e["kind"] for e in data["edges"]] == ["parent"]

    def test_layout_table(self, storage):
        result = invoke(storage, "layout")
        assert result.exit_code == 0
        assert "Layout 400 x 380" in result.output

    def test_check_clean(self, storage):
        invoke(storage, "add-parent", "root")

        result = invoke(storage, "check")

        assert result.exit_code == 0
        assert "No integrity issues" in result.output


class TestSharingCommands:
    """Tests for export and import."""

    def test_export_import_round_trip(self, storage, tmp_path):
        invoke(storage, "add-parent", "root", "--given", "Ada")
        token = invoke(storage, "export").output.strip()

        other = tmp_path / "other"
        result = invoke(other, "import", token)

        assert result.exit_code == 0
        assert "Imported 2 people" in result.output
        assert by_name(load(other), "Ada").generation == 1

    def test_export_url(self, storage):
        result = invoke(storage, "export", "--url", "https://example.com/tree")

        assert result.exit_code == 0
        assert result.output.startswith("https://example.com/tree?data=")

    def test_export_sanitized(self, storage):
        invoke(storage, "add-parent", "root", "--given", "Ada")
        token = invoke(storage, "export", "--sanitize").output.strip()

        names = {p.given_name for p in decode_token(token).people}
        assert names == {"Self", "Parent"}

    def test_import_file(self, storage, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"version": "1.0.0", "people": [{"id": "x", "givenName": "Xi"}]}))

        result = invoke(storage, "import", str(path))

        assert result.exit_code == 0
        assert load(storage).get("x").given_name == "Xi"

    def test_import_garbage(self, storage):
        invoke(storage, "add-parent", "root", "--given", "Ada")

        result = invoke(storage, "import", "definitely-not-a-token")

        assert result.exit_code == 1
        assert "nothing was changed" in result.output
        assert len(load(storage).people) == 2
