"""Tests for timebox.storage: blob store, fail-closed decoding and legacy migration."""

from __future__ import annotations

import json

import pytest

from timebox.errors import MalformedStateError
from timebox.io_utils import read_text, write_text
from timebox.storage import (
    STORAGE_KEYS,
    BlobStore,
    Storage,
    decode_schedule,
    decode_task,
    encode_task,
)
from timebox.tasks.model import AppSettings, Template


def _write_blob(storage: Storage, name: str, value: object) -> None:
    write_text(storage.blobs.path_for(STORAGE_KEYS[name]), json.dumps(value))


class TestBlobStore:
    def test_missing_key(self, data_dir):
        blobs = BlobStore(data_dir)
        assert blobs.get("nope") is None
        assert blobs.get_json("nope") is None
        assert blobs.has("nope") is False

    def test_set_creates_directory(self, tmp_path):
        blobs = BlobStore(tmp_path / "deep" / "dir")
        blobs.set_json("k", {"a": 1})
        assert json.loads(read_text(tmp_path / "deep" / "dir" / "k.json")) == {"a": 1}

    def test_invalid_json_raises_malformed(self, data_dir):
        write_text(data_dir / "k.json", "{not json")
        with pytest.raises(MalformedStateError) as exc:
            BlobStore(data_dir).get_json("k")
        assert exc.value.key == "k"

    def test_no_temp_file_left_behind(self, data_dir):
        BlobStore(data_dir).set("k", "x")
        assert sorted(p.name for p in data_dir.iterdir()) == ["k.json"]


class TestTaskCodec:
    def test_wire_format_uses_camel_case(self, make_task):
        raw = encode_task(make_task("a", start_min=540, duration=30))
        assert raw["startMin"] == 540
        assert raw["isCompleted"] is False

    def test_is_completed_defaults_false(self):
        task = decode_task({"id": "a", "title": "", "startMin": 0, "duration": 15, "color": "x"}, "k")
        assert task.is_completed is False

    @pytest.mark.parametrize(
        "patch",
        [
            {"id": 5},
            {"id": ""},
            {"startMin": 1440},
            {"startMin": -1},
            {"startMin": "540"},
            {"startMin": True},
            {"duration": 0},
            {"duration": 15.5},
            {"color": None},
            {"title": 3},
            {"isCompleted": "yes"},
        ],
    )
    def test_bad_fields_rejected(self, make_task, patch):
        raw = encode_task(make_task("a")) | patch
        with pytest.raises(MalformedStateError):
            decode_task(raw, "k")

    def test_one_bad_entry_rejects_whole_schedule(self, make_task):
        good = encode_task(make_task("a"))
        with pytest.raises(MalformedStateError):
            decode_schedule({"2024-01-01": [good, {"id": "b"}]}, "k")

    def test_bad_date_key_rejected(self, make_task):
        with pytest.raises(MalformedStateError):
            decode_schedule({"tomorrow": [encode_task(make_task("a"))]}, "k")


class TestTasks:
    def test_round_trip(self, storage, make_task):
        schedule = {
            "2024-01-01": [make_task("a", start_min=540), make_task("b", start_min=600, is_completed=True)],
            "2024-01-02": [make_task("c", start_min=0, duration=1440)],
        }
        storage.save_tasks(schedule)
        assert storage.load_tasks() == schedule

    def test_empty_days_not_written(self, storage, make_task):
        storage.save_tasks({"2024-01-01": [], "2024-01-02": [make_task("a")]})
        assert list(storage.load_tasks()) == ["2024-01-02"]

    def test_nothing_stored(self, storage):
        assert storage.load_tasks() == {}

    def test_malformed_falls_back_to_empty(self, storage):
        write_text(storage.blobs.path_for(STORAGE_KEYS["tasks"]), "garbage")
        assert storage.load_tasks() == {}

    def test_wrong_shape_falls_back_to_empty(self, storage):
        _write_blob(storage, "tasks", [1, 2, 3])
        assert storage.load_tasks() == {}

    @pytest.mark.parametrize("raw", [b'{"2024-01-01": [\xff\xfe]}', b"\xff"])
    def test_invalid_utf8_falls_back_to_empty(self, storage, raw):
        storage.blobs.path_for(STORAGE_KEYS["tasks"]).write_bytes(raw)
        assert storage.load_tasks() == {}

    def test_invalid_utf8_is_malformed_state(self, data_dir):
        blobs = BlobStore(data_dir)
        blobs.path_for("k").write_bytes(b"\xff")
        with pytest.raises(MalformedStateError):
            blobs.get_json("k")


class TestLegacyMigration:
    def test_legacy_list_adopted_as_today(self, storage, make_task):
        _write_blob(storage, "legacy_tasks", [encode_task(make_task("old"))])
        schedule = storage.load_tasks(today_id="2024-03-03")
        assert [t.id for t in schedule["2024-03-03"]] == ["old"]

    def test_legacy_key_never_written(self, storage, make_task):
        legacy_path = storage.blobs.path_for(STORAGE_KEYS["legacy_tasks"])
        _write_blob(storage, "legacy_tasks", [encode_task(make_task("old"))])
        before = read_text(legacy_path)

        schedule = storage.load_tasks(today_id="2024-03-03")
        storage.save_tasks(schedule)

        assert read_text(legacy_path) == before
        assert storage.blobs.has(STORAGE_KEYS["tasks"])

    def test_migration_happens_once(self, storage, make_task):
        _write_blob(storage, "legacy_tasks", [encode_task(make_task("old"))])
        storage.load_tasks(today_id="2024-03-03")
        schedule = storage.load_tasks(today_id="2024-03-04")
        assert list(schedule) == ["2024-03-03"]
        assert [t.id for t in schedule["2024-03-03"]] == ["old"]

    def test_date_keyed_blob_wins_over_legacy(self, storage, make_task):
        _write_blob(storage, "legacy_tasks", [encode_task(make_task("old"))])
        storage.save_tasks({"2024-01-01": [make_task("new")]})
        schedule = storage.load_tasks(today_id="2024-03-03")
        assert list(schedule) == ["2024-01-01"]

    def test_malformed_legacy_ignored(self, storage):
        _write_blob(storage, "legacy_tasks", {"not": "a list"})
        assert storage.load_tasks(today_id="2024-03-03") == {}


class TestSettings:
    def test_defaults(self, storage):
        assert storage.load_settings() == AppSettings(wake_time=7, bed_time=23)

    def test_round_trip(self, storage):
        storage.save_settings(AppSettings(wake_time=6, bed_time=22))
        assert storage.load_settings() == AppSettings(wake_time=6, bed_time=22)

    @pytest.mark.parametrize("blob", [{"wakeTime": 7}, {"wakeTime": 24, "bedTime": 23}, "x", None])
    def test_bad_settings_fall_back(self, storage, blob):
        _write_blob(storage, "settings", blob)
        assert storage.load_settings() == AppSettings()

    def test_invalid_utf8_settings_fall_back(self, storage):
        storage.blobs.path_for(STORAGE_KEYS["settings"]).write_bytes(b"\xff")
        assert storage.load_settings() == AppSettings()


class TestTemplates:
    def test_round_trip(self, storage):
        templates = [Template(id="t1", title="Gym", duration=60, color="c")]
        storage.save_templates(templates)
        assert storage.load_templates() == templates

    def test_bad_template_falls_back(self, storage):
        _write_blob(storage, "templates", [{"id": "t1", "duration": -5, "color": "c"}])
        assert storage.load_templates() == []
