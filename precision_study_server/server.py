import argparse
import os

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, PlainTextResponse

from precision_study_server.records import (
    SessionStartRequest,
    SessionStartResponse,
    StudyResult,
    SUSRecord,
    SUSSubmission,
    epoch_seconds,
)
from precision_study_server.scoring import sus_score
from precision_study_server.store import study_result_store, sus_store

STUDY_RESULTS_CSV = os.environ.get("STUDY_RESULTS_CSV", "study_results.csv")
SUS_RESPONSES_CSV = os.environ.get("SUS_RESPONSES_CSV", "sus_responses.csv")
DASHBOARD_HTML = os.environ.get(
    "DASHBOARD_HTML",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "static", "dashboard.html"),
)
DEFAULT_PORT = 8080

study_results = study_result_store(STUDY_RESULTS_CSV)
sus_responses = sus_store(SUS_RESPONSES_CSV)

app = FastAPI()


@app.exception_handler(RequestValidationError)
async def bad_request_body(request: Request, exc: RequestValidationError):
    # the study app expects a plain 400 with the decode error, not FastAPI's 422 JSON
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        message = f"{loc}: {err['msg']}"
        if "error" in err.get("ctx", {}):
            message += f" ({err['ctx']['error']})"
        messages.append(message)
    return PlainTextResponse("; ".join(messages), status_code=400)


@app.post("/metrics", status_code=201)
@app.post("/log", status_code=201)  # legacy path, same behavior
def submit_metrics(result: StudyResult):
    result = result.with_elapsed_time()
    print(f"Received metrics: Session={result.session_id}, Task={result.task_name}, Method={result.selection_method}, "
          f"Time={result.time_taken_ms}ms, Accuracy={result.accuracy_score:.2f}", flush=True)

    study_results.append(result)
    return {}


@app.post("/sessions/start")
def start_session(req: SessionStartRequest) -> SessionStartResponse:
    session_id = f"session_{req.participant_id}_{epoch_seconds(req.started_at)}"
    print(f"Session started: ID={session_id}, Participant={req.participant_id}, Arm={req.counterbalance_arm}", flush=True)
    return SessionStartResponse(session_id=session_id)


@app.post("/sus", status_code=201)
def submit_sus(submission: SUSSubmission):
    score = sus_score(submission.responses)
    record = SUSRecord(**submission.model_dump(), total_score=score)

    sus_responses.append(record)
    print(f"SUS submitted: Session={record.session_id}, Score={score}", flush=True)
    return {}


@app.get("/api/metrics", response_model_exclude_none=True)
def get_metrics(response: Response) -> list[StudyResult]:
    response.headers["Access-Control-Allow-Origin"] = "*"
    return study_results.read_all()


@app.get("/api/sus")
def get_sus(response: Response) -> list[SUSRecord]:
    response.headers["Access-Control-Allow-Origin"] = "*"
    return sus_responses.read_all()


@app.get("/dashboard", response_class=FileResponse)
@app.get("/", response_class=FileResponse)
def serve_dashboard():
    if not os.path.isfile(DASHBOARD_HTML):
        raise HTTPException(status_code=404, detail=f"Dashboard not found: {DASHBOARD_HTML}")
    return FileResponse(DASHBOARD_HTML, headers={"Cache-Control": "no-cache"})


def get_args():
    parser = argparse.ArgumentParser(description="Run the precision study data collection server")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    return parser.parse_args()


def main():
    args = get_args()

    print(f"Precision study server starting on http://localhost:{args.port}")
    print(f"Writing task metrics to {STUDY_RESULTS_CSV} and SUS responses to {SUS_RESPONSES_CSV}")
    print("Available endpoints:")
    print("  GET  / or /dashboard - Interactive dashboard")
    print("  GET  /api/metrics - Get all metrics as JSON")
    print("  GET  /api/sus - Get all SUS data as JSON")
    print("  POST /metrics - Submit task metrics")
    print("  POST /sessions/start - Initialize study session")
    print("  POST /sus - Submit SUS survey responses")
    print("  POST /log - Legacy metrics endpoint", flush=True)

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
