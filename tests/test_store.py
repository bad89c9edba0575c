import csv
from datetime import datetime, timedelta, timezone
from pathlib import Path

from precision_study_server.records import StudyResult, SUSRecord
from precision_study_server.store import study_result_store, sus_store
from precision_study_server.tabular import STUDY_RESULT_HEADER, SUS_HEADER, encode_study_result

START = datetime(2025, 9, 24, 10, 0, tzinfo=timezone.utc)


def make_result(i: int) -> StudyResult:
    return StudyResult(
        session_id="session_p1_1758708000",
        participant_id="p1",
        task_id=f"task-{i}",
        task_name=f"Task, number \"{i}\"",  # needs CSV quoting
        started_at=START + timedelta(minutes=i),
        ended_at=START + timedelta(minutes=i, seconds=3),
        time_taken_ms=3000,
        tap_count=i,
        accuracy_score=0.5,
    )


def test_missing_file_reads_empty(tmp_path: Path):
    store = study_result_store(str(tmp_path / "missing.csv"))
    assert store.read_all() == []


def test_append_then_read_all_in_order(tmp_path: Path):
    store = study_result_store(str(tmp_path / "results.csv"))
    records = [make_result(i) for i in range(5)]
    for record in records:
        assert store.append(record)

    assert store.read_all() == records


def test_header_written_once(tmp_path: Path):
    path = tmp_path / "results.csv"
    store = study_result_store(str(path))
    store.append(make_result(0))
    store.append(make_result(1))

    lines = path.read_text().splitlines()
    assert lines[0] == ",".join(STUDY_RESULT_HEADER)
    assert len(lines) == 3
    assert sum(1 for line in lines if line.startswith("SessionID,")) == 1


def test_header_only_file_reads_empty(tmp_path: Path):
    path = tmp_path / "results.csv"
    path.write_text(",".join(STUDY_RESULT_HEADER) + "\r\n")
    assert study_result_store(str(path)).read_all() == []


def test_short_rows_are_skipped(tmp_path: Path):
    path = tmp_path / "results.csv"
    good = make_result(2)
    good_row = ",".join(encode_study_result(good.model_copy(update={"task_name": "plain"})))
    path.write_text("\r\n".join([
        ",".join(STUDY_RESULT_HEADER),
        "s1,p1,t1",
        good_row,
        "",
    ]))

    records = study_result_store(str(path)).read_all()
    assert len(records) == 1
    assert records[0].task_id == "task-2"


def test_append_failure_is_swallowed(tmp_path: Path, capsys):
    store = study_result_store(str(tmp_path / "no-such-dir" / "results.csv"))
    assert store.append(make_result(0)) is False
    assert "Could not write" in capsys.readouterr().out
    assert store.read_all() == []


def test_stores_are_independent(tmp_path: Path):
    results = study_result_store(str(tmp_path / "results.csv"))
    sus = sus_store(str(tmp_path / "sus.csv"))
    results.append(make_result(0))

    record = SUSRecord(session_id="s1", responses=[3] * 10, submitted_at=START, total_score=50)
    sus.append(record)

    assert sus.read_all() == [record]
    assert len(results.read_all()) == 1
    assert (tmp_path / "sus.csv").read_text().splitlines()[0] == ",".join(SUS_HEADER)


def test_very_long_field_does_not_hide_later_rows(tmp_path: Path):
    store = study_result_store(str(tmp_path / "results.csv"))
    long_answer = make_result(1).model_copy(update={"task_name": "x" * 200_000})
    records = [make_result(0), long_answer, make_result(2)]
    for record in records:
        store.append(record)

    read_back = store.read_all()
    assert [r.task_id for r in read_back] == ["task-0", "task-1", "task-2"]
    assert read_back[1].task_name == "x" * 200_000


def test_unreadable_row_is_skipped_individually(tmp_path: Path, capsys):
    store = study_result_store(str(tmp_path / "results.csv"))
    for i in range(3):
        store.append(make_result(i) if i != 1 else make_result(1).model_copy(update={"task_name": "y" * 500}))

    old_limit = csv.field_size_limit(100)
    try:
        read_back = store.read_all()
    finally:
        csv.field_size_limit(old_limit)

    assert [r.task_id for r in read_back] == ["task-0", "task-2"]
    assert "Skipping malformed row" in capsys.readouterr().out


def test_invalid_utf8_bytes_do_not_abort_read(tmp_path: Path):
    path = tmp_path / "results.csv"
    store = study_result_store(str(path))
    store.append(make_result(0))
    with open(path, "ab") as f:
        f.write(b"\xff\xfe broken\r\n")
    store.append(make_result(1))

    assert [r.task_id for r in store.read_all()] == ["task-0", "task-1"]
