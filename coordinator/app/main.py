# coordinator/app/main.py

import os
import uuid
import asyncio
import logging
from dataclasses import asdict
from typing import Dict, Optional, List, Literal

from fastapi import FastAPI, HTTPException, BackgroundTasks
from pydantic import BaseModel

from wccommon.types import display_word

from .settings import Settings, settings
from .storage import run_paths, ensure_dir, fetch_corpus
from .pipeline import RunState, WordCountRun, timeline_durations

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("COORDINATOR_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(threadName)s] %(message)s"
)
log = logging.getLogger("gridwc-coordinator")

# ---------------------------------------------------------------------------
# Modelos
# ---------------------------------------------------------------------------
QUEUED = "QUEUED"
PREPARING = "PREPARING"
UNKNOWN = "UNKNOWN"

class RunRequest(BaseModel):
    corpus_url: str
    workers: int = 4
    backend: Optional[Literal["threads", "processes"]] = None
    boundary_mode: Optional[Literal["split", "stitch"]] = None

class RankedWord(BaseModel):
    word: str
    count: int

class RunStatus(BaseModel):
    run_id: str
    status: str
    message: Optional[str] = None
    corpus_path: Optional[str] = None
    workers: Optional[int] = None
    backend: Optional[str] = None
    boundary_mode: Optional[str] = None
    total_words: Optional[int] = None
    unique_words: Optional[int] = None
    elapsed_s: Optional[float] = None
    top: Optional[List[RankedWord]] = None

# ---------------------------------------------------------------------------
# Estado global
# ---------------------------------------------------------------------------
app = FastAPI(title="GridWC Coordinator")

RUNS: Dict[str, RunStatus] = {}
ACTIVE: Dict[str, WordCountRun] = {}     # run_id -> corrida (para el timeline)

def _current(st: RunStatus) -> RunStatus:
    run = ACTIVE.get(st.run_id)
    if run is not None and st.status not in (RunState.DONE.value, RunState.FAILED.value, QUEUED, PREPARING):
        st.status = run.state.value
    return st

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.get("/health")
def health():
    log.debug("health check")
    return {
        "ok": True,
        "shared_dir": settings.SHARED_DIR,
        "max_workers": settings.MAX_WORKERS,
    }

@app.post("/runs")
def submit_run(req: RunRequest, background_tasks: BackgroundTasks):
    if not 1 <= req.workers <= settings.MAX_WORKERS:
        raise HTTPException(status_code=400, detail=f"workers must be in [1, {settings.MAX_WORKERS}]")
    run_id = uuid.uuid4().hex[:8]
    log.info("run submitted id=%s corpus=%s workers=%s backend=%s boundary=%s",
             run_id, req.corpus_url, req.workers, req.backend, req.boundary_mode)
    st = RunStatus(run_id=run_id, status=QUEUED, workers=req.workers,
                   backend=req.backend or settings.BACKEND,
                   boundary_mode=req.boundary_mode or settings.BOUNDARY_MODE)
    RUNS[run_id] = st
    background_tasks.add_task(execute_run, run_id, req)
    return {
        "run_id": run_id,
        "status": st.status,
        "message": "run submitted successfully"
    }

@app.get("/runs")
def list_runs():
    return {"runs": [
        {"run_id": run_id, "status": _current(st).status, "message": st.message}
        for run_id, st in RUNS.items()
    ]}

@app.get("/runs/latest")
def latest_run():
    if not RUNS:
        return {"error": "no runs yet"}
    return _current(RUNS[list(RUNS.keys())[-1]])

@app.get("/runs/{run_id}")
def get_run(run_id: str):
    st = RUNS.get(run_id)
    if not st:
        return RunStatus(run_id=run_id, status=UNKNOWN, message="not found")
    return _current(st)

@app.get("/runs/{run_id}/top")
def get_top(run_id: str):
    st = RUNS.get(run_id)
    if not st:
        raise HTTPException(status_code=404, detail="run not found")
    if st.status != RunState.DONE.value:
        raise HTTPException(status_code=409, detail=f"run is {_current(st).status}")
    return {"run_id": run_id, "top": st.top}

@app.get("/runs/{run_id}/timeline")
def run_timeline(run_id: str):
    run = ACTIVE.get(run_id)
    if not run:
        raise HTTPException(404, "run not found")
    return asdict(run.timeline)

@app.delete("/runs/{run_id}")
def delete_run(run_id: str):
    existed = RUNS.pop(run_id, None) is not None
    ACTIVE.pop(run_id, None)
    return {"run_id": run_id, "deleted": existed}

@app.get("/metrics/runs")
def metrics_runs():
    out = []
    for run_id, run in ACTIVE.items():
        out.append({
            "run_id": run_id,
            "status": run.timeline.status,
            "workers": run.workers,
            "backend": run.backend_name,
            **timeline_durations(run.timeline),
        })
    return {"runs": out}

# ---------------------------------------------------------------------------
# Ejecución
# ---------------------------------------------------------------------------
def _api_settings() -> Settings:
    # el servidor tiene hilos vivos (uvicorn, background tasks): fork no es seguro aquí
    return settings.model_copy(update={"MP_START_METHOD": settings.API_MP_START_METHOD})

def execute_run(run_id: str, req: RunRequest):
    st = RUNS.get(run_id)
    if st is None:
        return
    paths = run_paths(settings.SHARED_DIR, run_id)
    run = WordCountRun(paths["input_file"], req.workers, settings=_api_settings(),
                       backend=req.backend, boundary_mode=req.boundary_mode, run_id=run_id)
    ACTIVE[run_id] = run
    try:
        st.status = PREPARING
        ensure_dir(paths["input_dir"])
        log.debug("downloading corpus to %s", paths["input_file"])
        asyncio.run(fetch_corpus(req.corpus_url, paths["input_file"], settings.SHARED_DIR))
        st.corpus_path = paths["input_file"]
        st.status = run.state.value

        result = run.run()

        st.status = RunState.DONE.value
        st.total_words = result.total_words
        st.unique_words = result.unique_words
        st.elapsed_s = result.elapsed_s
        st.top = [RankedWord(word=display_word(e.word), count=e.count) for e in result.top]
        st.message = "ok"
    except Exception as e:
        st.status = RunState.FAILED.value
        st.message = str(e)
        if run.state != RunState.FAILED:
            run.fail(e)
        log.error("run failed id=%s err=%s", run_id, e)
