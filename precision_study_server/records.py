import re
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, AwareDatetime, BaseModel, BeforeValidator, Field, StrictFloat, StrictInt, model_validator
from pydantic.alias_generators import to_camel

# zero value for timestamps the app did not send
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

LONE_SURROGATE = re.compile(r"[\ud800-\udfff]")


def replace_lone_surrogates(text: str) -> str:
    # JSON "\ud800" escapes decode to lone surrogates, which can't be written as UTF-8
    return LONE_SURROGATE.sub("\ufffd", text)


def require_timestamp_text(value: Any) -> Any:
    if isinstance(value, (int, float)):
        raise ValueError("timestamp must be an RFC 3339 string")
    return value


Text = Annotated[str, AfterValidator(replace_lone_surrogates)]
Timestamp = Annotated[AwareDatetime, BeforeValidator(require_timestamp_text)]


def epoch_seconds(dt: datetime) -> int:
    # integer floor, no float rounding
    return (dt - EPOCH) // timedelta(seconds=1)


class JsonRecord(BaseModel, frozen=True, alias_generator=to_camel, populate_by_name=True):
    """Base for bodies sent by the study app.

    Numbers must be JSON numbers, and an explicit null leaves a field at its zero value.
    """

    @model_validator(mode="before")
    @classmethod
    def null_is_zero_value(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class StudyResult(JsonRecord):
    # identification
    session_id: Text = ""
    participant_id: Text = ""
    task_id: Text = ""

    # task information
    task_name: Text = ""
    selection_method: Text = ""
    task_difficulty: Text = ""
    task_type: Text = ""

    # timing, time_taken_ms is always derived from the timestamps
    started_at: Timestamp = ZERO_TIME
    ended_at: Timestamp = ZERO_TIME
    time_taken_ms: StrictInt = Field(default=0, alias="timeTaken_ms")

    # interaction
    total_adjustments: StrictInt = 0
    excess_travel: StrictInt = 0
    precision_activations: StrictInt = 0
    precision_duration: StrictFloat = 0.0
    gesture_count: StrictInt = 0
    long_press_count: StrictInt = 0
    tap_count: StrictInt = 0
    drag_count: StrictInt = 0

    # performance
    accuracy_score: StrictFloat = 0.0
    error_count: StrictInt = 0
    average_selection_speed: StrictFloat = 0.0
    completion_status: Text = ""

    # selection details
    final_selection_start: StrictInt = 0
    final_selection_end: StrictInt = 0
    text_length: StrictInt = 0

    cognitive_load_score: StrictFloat | None = None

    def with_elapsed_time(self) -> "StudyResult":
        """Return a copy whose time_taken_ms is recomputed as ended_at - started_at."""
        elapsed = self.ended_at - self.started_at
        # truncated toward zero
        time_taken_ms = int(elapsed / timedelta(milliseconds=1))
        return self.model_copy(update={"time_taken_ms": time_taken_ms})


class SUSSubmission(JsonRecord):
    session_id: Text = ""
    responses: list[StrictInt] = []  # Likert 1-5, nominally 10 items
    submitted_at: Timestamp = ZERO_TIME


class SUSRecord(SUSSubmission):
    """A stored SUS submission together with the score computed when it was written."""
    total_score: StrictInt = 0


class SessionStartRequest(JsonRecord):
    participant_id: Text = ""
    counterbalance_arm: StrictInt = 0
    started_at: Timestamp = ZERO_TIME


class SessionStartResponse(JsonRecord):
    session_id: str
