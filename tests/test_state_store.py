"""Tests for the state store backends."""

import json

import pytest

from groundwork.config import Settings
from groundwork.core.errors import ExitCode, StateStoreError
from groundwork.state import FileStateStore, MemoryStateStore, open_state_store
from groundwork.state.models import StateRecord
from groundwork.state.sql import SqlStateStore


def make_record(name="network", **overrides):
    data = {
        "name": name,
        "resource_type": "aws:ec2/vpc",
        "identifier": f"vpc-{name}",
        "property_hash": "ab" * 32,
        "properties": {"cidr_block": "10.0.0.0/16", "tags": {"env": "test"}},
        "outputs": {"id": f"vpc-{name}", "arn": f"arn:aws:ec2:us-east-1:1:vpc/vpc-{name}"},
        "dependencies": ["b", "a"],
    }
    data.update(overrides)
    return StateRecord(**data)


class TestStateRecord:
    def test_dict_round_trip(self):
        record = make_record()

        restored = StateRecord.from_dict(record.to_dict())

        assert restored == StateRecord(**{**record.__dict__, "dependencies": ["a", "b"]})

    def test_from_dict_defaults(self):
        record = StateRecord.from_dict(
            {"name": "x", "resource_type": "t:x", "identifier": "i", "property_hash": "h"}
        )

        assert record.properties == {}
        assert record.dependencies == []
        assert record.updated_at.tzinfo is not None


class TestMemoryStateStore:
    def test_upsert_and_delete(self):
        store = MemoryStateStore()
        store.upsert(make_record("a"))
        store.upsert(make_record("b"))
        store.delete("a")
        store.delete("missing")

        assert list(store.read_all()) == ["b"]

    def test_read_all_is_a_copy(self):
        store = MemoryStateStore([make_record("a")])

        store.read_all().clear()

        assert "a" in store.read_all()


class TestFileStateStore:
    def test_missing_file_is_empty(self, tmp_path):
        assert FileStateStore(tmp_path / "state.json").read_all() == {}

    def test_upsert_persists(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        FileStateStore(path).upsert(make_record())

        records = FileStateStore(path).read_all()

        assert records["network"].identifier == "vpc-network"
        assert records["network"].properties["tags"] == {"env": "test"}
        document = json.loads(path.read_text())
        assert document["version"] == 1
        assert list(document["resources"]) == ["network"]

    def test_delete(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        store.upsert(make_record("a"))
        store.upsert(make_record("b"))

        store.delete("a")
        store.delete("a")

        assert list(store.read_all()) == ["b"]

    def test_no_temp_files_left(self, tmp_path):
        store = FileStateStore(tmp_path / "state.json")
        for name in ("a", "b", "c"):
            store.upsert(make_record(name))

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateStoreError) as exc_info:
            FileStateStore(path).read_all()

        assert exc_info.value.exit_code == ExitCode.STATE_ERROR
        assert exc_info.value.details["path"] == str(path)

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "resources": {}}))

        with pytest.raises(StateStoreError, match="version"):
            FileStateStore(path).upsert(make_record())

        assert json.loads(path.read_text())["version"] == 99

    @pytest.mark.parametrize("document", [[], "state", {"version": 1, "resources": []}])
    def test_document_must_be_object(self, tmp_path, document):
        path = tmp_path / "state.json"
        path.write_text(json.dumps(document))

        with pytest.raises(StateStoreError, match="must") as exc_info:
            FileStateStore(path).read_all()

        assert exc_info.value.exit_code == ExitCode.STATE_ERROR

    def test_record_missing_field(self, tmp_path):
        path = tmp_path / "state.json"
        record = make_record().to_dict()
        del record["identifier"]
        path.write_text(json.dumps({"version": 1, "resources": {"network": record}}))

        with pytest.raises(StateStoreError, match="network") as exc_info:
            FileStateStore(path).read_all()

        assert exc_info.value.exit_code == ExitCode.STATE_ERROR
        assert exc_info.value.details["resource"] == "network"


class TestSqlStateStore:
    def test_upsert_read_delete(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'state.db'}"
        store = SqlStateStore(url)
        store.upsert(make_record("a"))
        store.upsert(make_record("a", identifier="vpc-replaced"))
        store.upsert(make_record("b"))
        store.delete("b")
        store.close()

        records = SqlStateStore(url).read_all()

        assert list(records) == ["a"]
        assert records["a"].identifier == "vpc-replaced"
        assert records["a"].dependencies == ["a", "b"]
        assert records["a"].outputs["arn"].startswith("arn:aws:ec2")
        assert records["a"].updated_at.tzinfo is not None

    def test_bad_url(self):
        with pytest.raises(StateStoreError):
            SqlStateStore("sqlite:////nonexistent-dir/deeper/state.db")


class TestOpenStateStore:
    def test_backends(self, tmp_path):
        memory = Settings(_env_file=None, state_backend="memory")
        file = Settings(_env_file=None, state_backend="file", state_path=str(tmp_path / "s.json"))
        sqlite = Settings(
            _env_file=None,
            state_backend="sqlite",
            database_url=f"sqlite:///{tmp_path / 's.db'}",
        )

        assert isinstance(open_state_store(memory), MemoryStateStore)
        assert isinstance(open_state_store(file), FileStateStore)
        assert open_state_store(file).path == tmp_path / "s.json"
        assert isinstance(open_state_store(sqlite), SqlStateStore)
