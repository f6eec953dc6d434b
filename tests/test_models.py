import json
from datetime import datetime

import pytest

from tardiness import config
from tardiness.models import ActionTaken, LateRecord, Student, records_from_dicts
from tardiness.utils import cell_text, digits_only, norm_text, try_parse_date, try_parse_month


def test_candidate_normalizes_phone_and_gets_id():
    s = Student.candidate(" أحمد علي ", phone="+968 9123-4567")
    assert s.name == "أحمد علي"
    assert s.phone == "96891234567"
    assert s.id.startswith("student-")

    placed = s.with_placement("5", "أ")
    assert (placed.id, placed.grade, placed.class_name) == (s.id, "5", "أ")


def test_student_dict_round_trip_uses_stored_keys():
    s = Student("student-1", "أحمد علي", "5", "أ", "96891234567")
    d = s.to_dict()
    assert d["className"] == "أ"
    assert Student.from_dict(d) == s


def test_late_record_snapshots_student():
    s = Student("student-1", "أحمد علي", "5", "أ", "96891234567")
    now = datetime(2024, 1, 15, 7, 42, 10)

    r = LateRecord.create(s, now=now)

    assert (r.student_id, r.student_name, r.grade, r.class_name, r.phone) == (
        "student-1", "أحمد علي", "5", "أ", "96891234567")
    assert r.date_string == "2024-01-15"
    assert r.arrival_time == "07:42"
    assert r.timestamp == int(now.timestamp() * 1000)
    assert r.action_taken is ActionTaken.NONE


def test_late_record_from_stored_camel_case():
    r = LateRecord.from_dict({
        "id": "late-1",
        "studentId": "student-1",
        "studentName": "أحمد علي",
        "grade": "5",
        "className": "أ",
        "timestamp": 1705300000000,
        "dateString": "2024-01-15",
        "arrivalTime": "07:42",
        "isExcused": True,
        "actionTaken": "PLEDGE",
    })
    assert (r.class_name, r.date_string, r.is_excused) == ("أ", "2024-01-15", True)
    assert r.action_taken is ActionTaken.PLEDGE
    assert r.action_taken.label == "تعهد خطي"


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        ActionTaken.parse("EXPEL")


def test_text_helpers():
    assert cell_text(96891234567.0) == "96891234567"
    assert cell_text(float("nan")) == ""
    assert cell_text("\ufeffأحمد ") == "أحمد"
    assert norm_text("  Ahmed   SAID ") == "ahmed said"
    assert digits_only("+968 (9123) 4567") == "96891234567"


def test_date_helpers():
    assert try_parse_date("2024-1-5") == "2024-01-05"
    assert try_parse_date("05/01/2024") == "2024-01-05"
    assert try_parse_date("tomorrow") is None
    assert try_parse_month("2024/3") == "2024-03"
    assert try_parse_month("2024-13") is None


def test_settings_from_file_and_environment(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"schoolName": "مدرسة النور", "rows_per_page": 30}), encoding="utf-8")
    monkeypatch.setattr(config, "settings_path", lambda: path)
    monkeypatch.setenv("LATE_TRACKER_FONT_PATH", "/fonts/amiri.ttf")
    monkeypatch.delenv("LATE_TRACKER_ROWS_PER_PAGE", raising=False)

    s = config.load_settings()

    assert s.school.school_name == "مدرسة النور"
    assert s.rows_per_page == 30
    assert s.font_path == "/fonts/amiri.ttf"

    monkeypatch.setenv("LATE_TRACKER_ROWS_PER_PAGE", "0")
    assert config.load_settings().rows_per_page == 30


def test_settings_defaults_when_file_is_missing(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "settings_path", lambda: tmp_path / "missing.json")
    monkeypatch.delenv("LATE_TRACKER_ROWS_PER_PAGE", raising=False)
    monkeypatch.delenv("LATE_TRACKER_FONT_PATH", raising=False)

    s = config.load_settings()

    assert s.rows_per_page == config.ROWS_PER_PAGE
    assert s.font_path is None


def test_stored_date_key_is_kept_as_written():
    r = LateRecord.from_dict({"id": "late-1", "studentId": "student-1", "studentName": "أحمد علي",
                              "timestamp": 1705300000000, "dateString": "2024-01-15 07:42"})
    assert r.date_string == "2024-01-15 07:42"


def test_record_dict_round_trip():
    s = Student("student-1", "أحمد علي", "5", "أ", "96891234567")
    r = LateRecord.create(s, now=datetime(2024, 1, 15, 7, 42), notes="حافلة")

    assert LateRecord.from_dict(r.to_dict()) == r
    assert r.to_dict()["dateString"] == "2024-01-15"


def test_unreadable_stored_records_are_skipped(caplog):
    good = LateRecord.create(Student("student-1", "أحمد علي"), now=datetime(2024, 1, 15, 7, 42)).to_dict()
    bad = dict(good, id="late-bad", actionTaken="EXPEL")

    with caplog.at_level("WARNING", logger="tardiness.models"):
        loaded = records_from_dicts([good, bad, "junk", {"id": ""}])

    assert [r.id for r in loaded] == [good["id"]]
    assert "late-bad" in caplog.text
    assert records_from_dicts(None) == []
