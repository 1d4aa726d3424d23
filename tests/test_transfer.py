"""Tests for JSON export/import, clearing and backups."""

from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from habitlog.errors import ImportFormatError
from habitlog.services.transfer import (
    backup_filename,
    clear_all,
    create_backup,
    export_data,
    habit_document,
    import_data,
    parse_import_document,
    prune_backups,
    read_import_file,
    storage_stats,
)


@pytest.fixture
def populated(app, habit_factory, complete_days):
    walk = habit_factory(name="Walk", tags=["health"], reminder_time="08:00", reminder_message="Go")
    read = habit_factory(name="Read", frequency="weekly", description="Ten pages")
    complete_days(walk.id, [0, 1, 2, 4])
    complete_days(read.id, [3])
    app.settings_repo.set("notificationsEnabled", True)
    return walk, read


def _without_date(document):
    return {key: value for key, value in document.items() if key != "exportDate"}


def test_export_layout(app, populated):
    walk, read = populated

    document = export_data(app.session_factory, exported_at=datetime(2024, 3, 1, 12, 0))

    assert set(document) == {"habits", "completions", "settings", "exportDate"}
    assert document["exportDate"] == "2024-03-01T12:00:00"
    exported_walk = next(h for h in document["habits"] if h["id"] == walk.id)
    assert exported_walk["reminderTime"] == "08:00"
    assert exported_walk["tags"] == ["health"]
    assert [entry["date"] for entry in document["completions"][walk.id]] == [
        "2024-02-26",
        "2024-02-28",
        "2024-02-29",
        "2024-03-01",
    ]
    assert document["settings"]["notificationsEnabled"] is True
    assert walk.id in document["settings"]["reminderTimes"]


def test_export_lists_habits_without_completions(app, habit_factory):
    habit = habit_factory()
    document = export_data(app.session_factory)
    assert document["completions"] == {habit.id: []}


def test_round_trip_reproduces_store_and_stats(app, populated):
    walk, _ = populated
    before = app.stats.habit_stats(walk.id)
    document = export_data(app.session_factory)

    clear_all(app.session_factory)
    assert app.registry.list_all() == []

    summary = import_data(app.session_factory, json.loads(json.dumps(document)))

    assert (summary.habits, summary.completions) == (2, 5)
    assert _without_date(export_data(app.session_factory)) == _without_date(document)
    after = app.stats.habit_stats(walk.id)
    assert after.current_streak == before.current_streak
    assert after.completion_rate_30 == before.completion_rate_30


def test_import_replaces_existing_data(app, populated, habit_factory):
    document = export_data(app.session_factory)
    habit_factory(name="Added later")

    import_data(app.session_factory, document)

    assert sorted(h.name for h in app.registry.list_all()) == ["Read", "Walk"]


@pytest.mark.parametrize("missing", ["habits", "completions", "settings"])
def test_missing_key_rejected_without_writes(app, populated, missing):
    document = export_data(app.session_factory)
    del document[missing]
    before = _without_date(export_data(app.session_factory))

    with pytest.raises(ImportFormatError) as excinfo:
        import_data(app.session_factory, document)

    assert excinfo.value.errors == [f"Missing top-level key: {missing}"]
    assert _without_date(export_data(app.session_factory)) == before


def test_bad_records_reported_together(app, populated):
    document = export_data(app.session_factory)
    document["habits"][0]["name"] = ""
    document["habits"][1]["frequency"] = "hourly"
    document["completions"]["ghost"] = [{"date": "2024-01-01"}]

    with pytest.raises(ImportFormatError) as excinfo:
        import_data(app.session_factory, document)

    errors = excinfo.value.errors
    assert "habits[0]: Habit name is required" in errors
    assert "habits[1]: Valid frequency is required (daily or weekly)" in errors
    assert len(errors) >= 3
    assert len(app.registry.list_all()) == 2


def test_bad_completion_date_rejected():
    document = {
        "habits": [
            {
                "id": "h1",
                "name": "Walk",
                "frequency": "daily",
                "createdAt": "2024-01-01T00:00:00",
            }
        ],
        "completions": {"h1": [{"date": "yesterday"}]},
        "settings": {},
    }
    with pytest.raises(ImportFormatError):
        parse_import_document(document)


def test_duplicate_dates_collapse_and_offsets_normalise():
    document = {
        "habits": [
            {
                "id": "h1",
                "name": "Walk",
                "frequency": "daily",
                "createdAt": "2024-01-01T02:00:00+02:00",
            }
        ],
        "completions": {"h1": [{"date": "2024-01-02"}, {"date": "2024-01-02"}]},
        "settings": {},
    }

    habits, completions, settings = parse_import_document(document)

    assert habits[0].created_at == datetime(2024, 1, 1, 0, 0)
    assert [record.completed_on for record in completions] == [date(2024, 1, 2)]
    assert settings == {}


@pytest.mark.parametrize(
    ("field", "value", "message"),
    [
        ("tags", 5, "habits[0]: Tags must be a collection of non-empty strings"),
        ("frequency", ["daily"], "habits[0]: Valid frequency is required (daily or weekly)"),
    ],
)
def test_wrongly_typed_habit_fields_rejected(app, populated, field, value, message):
    document = export_data(app.session_factory)
    document["habits"][0][field] = value

    with pytest.raises(ImportFormatError) as excinfo:
        import_data(app.session_factory, document)

    assert message in excinfo.value.errors
    assert len(app.registry.list_all()) == 2


def test_non_object_document_rejected():
    with pytest.raises(ImportFormatError):
        parse_import_document(["not", "a", "document"])


def test_clear_all_restores_default_settings(app, populated):
    clear_all(app.session_factory)

    assert app.registry.list_all() == []
    assert app.completion_repo.list_by_habit() == {}
    assert app.settings_repo.get_all() == {"notificationsEnabled": False, "reminderTimes": {}}


def test_read_import_file_rejects_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ImportFormatError):
        read_import_file(path)


def test_read_import_file_rejects_non_utf8(tmp_path):
    path = tmp_path / "binary.json"
    path.write_bytes(b"\xff\xfe{}")

    with pytest.raises(ImportFormatError) as excinfo:
        read_import_file(path)

    assert excinfo.value.errors == ["binary.json is not UTF-8 encoded text"]


def test_habit_document(app, populated):
    walk, _ = populated

    document = habit_document(app.stats, walk.id, exported_at=datetime(2024, 3, 1, 12, 0))

    assert document["habit"]["name"] == "Walk"
    assert [entry["date"] for entry in document["completions"]] == [
        "2024-02-26",
        "2024-02-28",
        "2024-02-29",
        "2024-03-01",
    ]
    assert document["stats"] == {
        "currentStreak": 3,
        "longestStreak": 3,
        "completionRate7": 57,
        "completionRate30": 13,
        "totalCompletions": 4,
        "completedToday": True,
    }
    assert document["exportDate"] == "2024-03-01T12:00:00"


def test_habit_document_skips_completions_outside_lookback(app, habit_factory, days_ago):
    habit = habit_factory()
    app.completion_log.mark_complete(habit.id, days_ago(400))
    app.completion_log.mark_complete(habit.id, days_ago(2))

    document = habit_document(app.stats, habit.id)

    assert [entry["date"] for entry in document["completions"]] == [days_ago(2).isoformat()]


def test_habit_document_unknown_habit(app):
    assert habit_document(app.stats, "missing") is None


def test_storage_stats(app, populated):
    stats = storage_stats(app.session_factory)

    assert (stats.total_habits, stats.total_completions) == (2, 5)
    document = export_data(app.session_factory)
    del document["exportDate"]
    assert stats.storage_size == len(json.dumps(document))


def test_storage_stats_empty_store(app):
    stats = storage_stats(app.session_factory)
    assert (stats.total_habits, stats.total_completions) == (0, 0)


def test_backup_retention(app, populated, tmp_path):
    backup_dir = tmp_path / "backups"
    for day in range(1, 8):
        create_backup(app.session_factory, backup_dir, day=date(2024, 3, day), retention=5)

    names = sorted(path.name for path in backup_dir.iterdir())

    assert len(names) == 5
    assert names[0] == backup_filename(date(2024, 3, 3))
    assert names[-1] == backup_filename(date(2024, 3, 7))
    assert json.loads((backup_dir / names[-1]).read_text())["habits"]


def test_prune_ignores_other_files(tmp_path):
    (tmp_path / "notes.json").write_text("{}")
    for day in (1, 2, 3):
        (tmp_path / backup_filename(date(2024, 1, day))).write_text("{}")

    removed = prune_backups(tmp_path, keep=1)

    assert sorted(path.name for path in removed) == [
        backup_filename(date(2024, 1, 1)),
        backup_filename(date(2024, 1, 2)),
    ]
    assert (tmp_path / "notes.json").exists()
