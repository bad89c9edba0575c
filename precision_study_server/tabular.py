"""Positional CSV encoding for stored records.

Column order is fixed by the header constants below and rows are read by position,
so new columns may only ever be appended at the end of a header.
"""
from datetime import datetime, timezone

from precision_study_server.records import StudyResult, SUSRecord, ZERO_TIME
from precision_study_server.scoring import SUS_ITEM_COUNT

STUDY_RESULT_HEADER = [
    "SessionID", "ParticipantID", "TaskID", "TaskName", "SelectionMethod", "TaskDifficulty", "TaskType",
    "StartedAt", "EndedAt", "TimeTakenMs", "TotalAdjustments", "ExcessTravel", "PrecisionActivations",
    "PrecisionDuration", "GestureCount", "LongPressCount", "TapCount", "DragCount", "AccuracyScore",
    "ErrorCount", "AverageSelectionSpeed", "CompletionStatus", "FinalSelectionStart", "FinalSelectionEnd",
    "TextLength", "CognitiveLoadScore",
]

SUS_HEADER = ["SessionID", "SubmittedAt"] + [f"Q{i + 1}" for i in range(SUS_ITEM_COUNT)] + ["TotalScore"]


def format_timestamp(dt: datetime) -> str:
    # RFC 3339, UTC written as Z, fractional seconds only when present
    text = dt.isoformat()
    if text.endswith("+00:00"):
        text = text[:-len("+00:00")] + "Z"
    return text


def parse_timestamp(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return ZERO_TIME
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def encode_study_result(result: StudyResult) -> list[str]:
    cognitive_load = ""
    if result.cognitive_load_score is not None:
        cognitive_load = f"{result.cognitive_load_score:.2f}"

    return [
        result.session_id,
        result.participant_id,
        result.task_id,
        result.task_name,
        result.selection_method,
        result.task_difficulty,
        result.task_type,
        format_timestamp(result.started_at),
        format_timestamp(result.ended_at),
        str(result.time_taken_ms),
        str(result.total_adjustments),
        str(result.excess_travel),
        str(result.precision_activations),
        f"{result.precision_duration:.3f}",
        str(result.gesture_count),
        str(result.long_press_count),
        str(result.tap_count),
        str(result.drag_count),
        f"{result.accuracy_score:.3f}",
        str(result.error_count),
        f"{result.average_selection_speed:.3f}",
        result.completion_status,
        str(result.final_selection_start),
        str(result.final_selection_end),
        str(result.text_length),
        cognitive_load,
    ]


def decode_study_result(row: list[str]) -> StudyResult | None:
    """Decode a stored row, or return None if it has too few fields.

    Unparseable fields decode to their zero value instead of rejecting the row.
    """
    if len(row) < len(STUDY_RESULT_HEADER):
        return None

    cognitive_load = parse_float(row[25]) if row[25] != "" else None

    return StudyResult(
        session_id=row[0],
        participant_id=row[1],
        task_id=row[2],
        task_name=row[3],
        selection_method=row[4],
        task_difficulty=row[5],
        task_type=row[6],
        started_at=parse_timestamp(row[7]),
        ended_at=parse_timestamp(row[8]),
        time_taken_ms=parse_int(row[9]),
        total_adjustments=parse_int(row[10]),
        excess_travel=parse_int(row[11]),
        precision_activations=parse_int(row[12]),
        precision_duration=parse_float(row[13]),
        gesture_count=parse_int(row[14]),
        long_press_count=parse_int(row[15]),
        tap_count=parse_int(row[16]),
        drag_count=parse_int(row[17]),
        accuracy_score=parse_float(row[18]),
        error_count=parse_int(row[19]),
        average_selection_speed=parse_float(row[20]),
        completion_status=row[21],
        final_selection_start=parse_int(row[22]),
        final_selection_end=parse_int(row[23]),
        text_length=parse_int(row[24]),
        cognitive_load_score=cognitive_load,
    )


def encode_sus_record(record: SUSRecord) -> list[str]:
    responses = [str(r) for r in record.responses[:SUS_ITEM_COUNT]]
    if len(record.responses) > SUS_ITEM_COUNT:
        print(f"Session {record.session_id} sent {len(record.responses)} SUS responses, storing the first {SUS_ITEM_COUNT}", flush=True)
    # short submissions keep the row width fixed with empty cells
    responses += [""] * (SUS_ITEM_COUNT - len(responses))

    return [record.session_id, format_timestamp(record.submitted_at)] + responses + [str(record.total_score)]


def decode_sus_record(row: list[str]) -> SUSRecord | None:
    if len(row) < len(SUS_HEADER):
        return None

    cells = row[2:2 + SUS_ITEM_COUNT]
    while cells and cells[-1] == "":
        cells.pop()

    return SUSRecord(
        session_id=row[0],
        submitted_at=parse_timestamp(row[1]),
        responses=[parse_int(c) for c in cells],
        total_score=parse_int(row[2 + SUS_ITEM_COUNT]),
    )
