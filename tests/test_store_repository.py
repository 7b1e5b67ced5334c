"""Tests for store repositories and JSON persistence."""

import json
from uuid import uuid4

import pytest

from rolnet.errors import NotFoundError
from rolnet.store import EthernetSwitch, Repository, StoreContext, StoreError, open_store


def _switch(name: str, serial: str = "") -> EthernetSwitch:
    return EthernetSwitch(name=name, serial=serial or f"SN-{name}", switch_model="tl-sg2210mp", address="10.0.0.1")


@pytest.fixture()
def repo():
    return Repository(EthernetSwitch, "switches")


class TestCrud:
    """Test insert/update/delete/get."""

    def test_insert_and_get(self, repo):
        stored = repo.insert(_switch("a"))
        assert repo.get_by_id(stored.id, include_deleted=False).name == "a"

    def test_returns_copies(self, repo):
        """Mutating a returned entity does not change the store."""
        stored = repo.insert(_switch("a"))
        stored.name = "changed"
        assert repo.get_by_id(stored.id, include_deleted=False).name == "a"

    def test_duplicate_id(self, repo):
        switch = repo.insert(_switch("a"))
        with pytest.raises(StoreError):
            repo.insert(switch)

    def test_update_keeps_created_at(self, repo):
        stored = repo.insert(_switch("a"))
        updated = repo.update(stored.id, stored.model_copy(update={"name": "b"}))
        assert updated.name == "b"
        assert updated.created_at == stored.created_at

    def test_update_missing(self, repo):
        with pytest.raises(NotFoundError):
            repo.update(uuid4(), _switch("a"))

    def test_get_missing(self, repo):
        with pytest.raises(NotFoundError):
            repo.get_by_id(uuid4(), include_deleted=True)

    def test_hard_delete(self, repo):
        stored = repo.insert(_switch("a"))
        repo.delete(stored.id, hard=True)
        with pytest.raises(NotFoundError):
            repo.get_by_id(stored.id, include_deleted=True)


class TestSoftDelete:
    """Soft-deleted rows are visible only with include_deleted=True."""

    def test_soft_deleted_visibility(self, repo):
        kept = repo.insert(_switch("kept"))
        gone = repo.insert(_switch("gone"))
        repo.delete(gone.id)

        assert [s.id for s in repo.get_all(include_deleted=False)] == [kept.id]
        assert {s.id for s in repo.get_all(include_deleted=True)} == {kept.id, gone.id}
        assert repo.count(include_deleted=False) == 1
        assert repo.get_by_id(gone.id, include_deleted=True).is_deleted
        with pytest.raises(NotFoundError):
            repo.get_by_id(gone.id, include_deleted=False)

    def test_delete_twice(self, repo):
        stored = repo.insert(_switch("a"))
        repo.delete(stored.id)
        with pytest.raises(NotFoundError):
            repo.delete(stored.id)


class TestListing:
    """Test ordering, paging and filtering."""

    def test_order_and_page(self, repo):
        for name in ("c", "a", "d", "b"):
            repo.insert(_switch(name))

        first = repo.get_list("name", "asc", page=1, page_size=3, include_deleted=False)
        second = repo.get_list("name", "asc", page=2, page_size=3, include_deleted=False)
        desc = repo.get_list("name", "desc", include_deleted=False)

        assert [s.name for s in first] == ["a", "b", "c"]
        assert [s.name for s in second] == ["d"]
        assert [s.name for s in desc] == ["d", "c", "b", "a"]

    def test_insertion_order_without_order_by(self, repo):
        for name in ("c", "a"):
            repo.insert(_switch(name))
        assert [s.name for s in repo.get_list(include_deleted=False)] == ["c", "a"]

    def test_unknown_order_field(self, repo):
        with pytest.raises(StoreError):
            repo.get_list("speed", include_deleted=False)

    def test_query_filter(self, repo):
        repo.insert(_switch("lab-1"))
        repo.insert(_switch("core"))
        query = repo.new_query_builder().where("name", "LIKE", "lab%")
        assert [s.name for s in repo.get_list(include_deleted=False, query=query)] == ["lab-1"]
        assert repo.count(include_deleted=False, query=query) == 1


class TestStoreContext:
    """Test JSON-file persistence."""

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "rolnet.json"
        switches, _, _ = open_store(StoreContext(path))
        stored = switches.insert(_switch("a"))
        switches.delete(stored.id)

        document = json.loads(path.read_text())
        assert set(document) == {"switches", "ports", "vlans"}

        reopened, _, _ = open_store(StoreContext(path))
        assert reopened.get_by_id(stored.id, include_deleted=True).is_deleted

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "rolnet.json"
        path.write_text("{not json")
        with pytest.raises(StoreError):
            open_store(StoreContext(path))

    def test_missing_file_is_empty(self, tmp_path):
        switches, _, _ = open_store(StoreContext(tmp_path / "absent.json"))
        assert switches.count(include_deleted=True) == 0

    def test_failed_write_leaves_rows_unchanged(self, tmp_path, monkeypatch):
        path = tmp_path / "rolnet.json"
        switches, _, _ = open_store(StoreContext(path))
        kept = switches.insert(_switch("a"))

        def _replace(src, dst):
            raise OSError("No space left on device")

        monkeypatch.setattr("rolnet.store.repository.os.replace", _replace)

        with pytest.raises(StoreError):
            switches.insert(_switch("b"))
        with pytest.raises(StoreError):
            switches.update(kept.id, kept.model_copy(update={"name": "renamed"}))
        with pytest.raises(StoreError):
            switches.delete(kept.id)
        with pytest.raises(StoreError):
            switches.delete(kept.id, hard=True)

        assert [s.name for s in switches.get_list(include_deleted=True)] == ["a"]
        assert not switches.get_by_id(kept.id, include_deleted=False).is_deleted
        assert json.loads(path.read_text())["switches"][0]["name"] == "a"
