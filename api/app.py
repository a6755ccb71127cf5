from __future__ import annotations
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import logging, os, threading, uuid, typing as t

# ---- Engine imports ----
from orr_core import config
from orr_core.config import load_config
from orr_core.engine import CATSession, Command
from orr_core.exports import audit_to_csv, audit_to_json, summary_to_csv, summary_to_json
from orr_core import item_bank
from orr_core.item_bank import BankLoadError
from orr_core.types import Participant

log = logging.getLogger(__name__)

SESS: dict[str, CATSession] = {}
# one lock per session; commands for a session are applied one at a time
_LOCKS: dict[str, threading.Lock] = {}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if load_config().preload_bank:
        try:
            bank = item_bank.get_bank()
            log.info("item bank preloaded (%d items)", len(bank))
        except BankLoadError as exc:
            log.error("item bank preload failed: %s", exc)
    yield


app = FastAPI(title="ORR Adaptive Test API", lifespan=lifespan)


@app.get("/")
def root():
    return {"status": "ok", "service": "orr-adaptive-test"}


ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ORR_ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


# ---- Schemas ----
class StartReq(BaseModel):
    age: int = 10
    education: str = "high_school"
    start_point_override: float | None = None
    practice: bool | None = None
    min_items: int | None = None
    max_items: int | None = None
    target_se: float | None = None
    seed: int | None = None


class CommandReq(BaseModel):
    type: t.Literal["score", "undo", "pause", "resume"]
    correct: bool | None = None
    rt_ms: float | None = Field(default=None, ge=0, allow_inf_nan=False)


# ---- Helpers ----
def _session(sid: str) -> CATSession:
    sess = SESS.get(sid)
    if not sess:
        raise HTTPException(404, "session not found")
    return sess


def _serialize_item(it):
    if it is None: return None
    content = it.content
    return {
        "id": it.id,
        "kind": it.kind,
        "content": list(content) if isinstance(content, tuple) else content,
        "target": it.target,
        "ipa": it.ipa,
        "difficulty": it.difficulty,
    }


def _status(sess: CATSession) -> dict[str, t.Any]:
    return {**sess.stats(), "current_item": _serialize_item(sess.current_item)}


def _lock(sid: str) -> threading.Lock:
    return _LOCKS.setdefault(sid, threading.Lock())


def _bank(cfg):
    if cfg.preload_bank:
        return item_bank.get_bank()
    return item_bank.load_bank()


# ---- Health ----
@app.get("/health")
def health():
    return {
        "active_sessions": len(SESS),
        "preload_bank": load_config().preload_bank,
        "audit_export_enabled": config.AUDIT_EXPORT_ENABLED,
    }


# ---- Session endpoints ----
@app.post("/session/start")
def start(req: StartReq):
    try:
        cfg = load_config(
            min_items=req.min_items,
            max_items=req.max_items,
            target_se=req.target_se,
            show_instructions=req.practice,
            seed=req.seed,
        )
    except ValueError as exc:
        raise HTTPException(422, str(exc))
    try:
        bank = _bank(cfg)
    except BankLoadError as exc:
        log.error("session start aborted: %s", exc)
        raise HTTPException(503, f"item bank failed to load: {exc}")

    participant = Participant(age=req.age, education=req.education, start_point_override=req.start_point_override)
    sess = CATSession(bank, participant, cfg)
    sess.start()
    sid = str(uuid.uuid4())
    SESS[sid] = sess
    return {"session_id": sid, "phase": sess.phase, "ability": sess.ability, "item": _serialize_item(sess.next_item())}


@app.get("/session/{sid}/next")
def next_item(sid: str):
    sess = _session(sid)
    with _lock(sid):
        item = sess.next_item()
        return {"phase": sess.phase, "done": sess.is_complete, "item": _serialize_item(item)}


@app.post("/session/{sid}/command")
def command(sid: str, req: CommandReq):
    sess = _session(sid)
    if req.type == "score" and req.correct is None:
        raise HTTPException(422, "score command requires 'correct'")
    with _lock(sid):
        result = sess.handle(Command(kind=req.type, correct=req.correct, rt=float(req.rt_ms or 0.0)))
        accepted = result is not None and result is not False
        return {"accepted": accepted, **_status(sess)}


@app.get("/session/{sid}/status")
def status(sid: str):
    return _status(_session(sid))


@app.get("/session/{sid}/summary")
def summary(sid: str):
    return summary_to_json(_session(sid).summary())


@app.get("/session/{sid}/summary.csv")
def summary_csv(sid: str):
    body = summary_to_csv(_session(sid).summary())
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"orr_results_{sid}.csv\""},
    )


@app.get("/session/{sid}/audit.json")
def get_audit_json(sid: str):
    if not config.AUDIT_EXPORT_ENABLED:
        raise HTTPException(404, "audit export disabled")
    sess = _session(sid)
    return {"session_id": sid, **audit_to_json(sess.audit_events)}


@app.get("/session/{sid}/audit.csv")
def get_audit_csv(sid: str):
    if not config.AUDIT_EXPORT_ENABLED:
        raise HTTPException(404, "audit export disabled")
    sess = _session(sid)
    return Response(
        content=audit_to_csv(sess.audit_events),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{sid}_audit.csv\""},
    )


@app.post("/session/{sid}/finish")
def finish(sid: str):
    sess = _session(sid)
    with _lock(sid):
        payload = summary_to_json(sess.summary())
        payload["stop_reason"] = sess.stop_reason
        SESS.pop(sid, None)
    _LOCKS.pop(sid, None)
    return payload
