"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the study planner backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. All `/study-sessions` routes require
a bearer token.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- POST /study-sessions, POST /study-sessions/bulk, GET /study-sessions
- GET /study-sessions/week, /study-sessions/week-stats, /study-sessions/capacity
- PUT /study-sessions/capacity/{weekday}
- POST /study-sessions/suggest, /study-sessions/plan, /study-sessions/template,
  /study-sessions/distribute
- GET/PATCH/DELETE /study-sessions/{id}
- POST/PATCH/DELETE /study-sessions/{id}/subtasks[/{subtask_id}]
- GET /health
"""

from datetime import date
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, models
from .auth import get_current_user
from .config import settings
from .scheduling import Clock, SystemClock, compute_week_window, iso_week_number, week_label
from .scheduling.types import CapacityBucket, DayStats, SessionDraft, Slot
from .schemas import (
    BulkCreateIn,
    CapacityIn,
    DistributeIn,
    RegisterIn,
    StudySessionIn,
    StudySessionUpdate,
    SubtaskIn,
    SubtaskUpdate,
    SuggestionIn,
    TemplatePlanIn,
    TokenOut,
)
from .utils.timestamps import isoformat_utc, parse_timestamp, resolve_timezone

app = FastAPI(title="Study Planner API")
logger = logging.getLogger("planner.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def get_clock() -> Clock:
    """Clock dependency; tests override it with a `FixedClock`."""
    return SystemClock()


def _request_line(request: Request, req_id: str, started: float, **extra) -> str:
    fields = {
        "request_id": req_id,
        "method": request.method,
        "path": request.url.path,
        **extra,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
    }
    return json.dumps(fields, ensure_ascii=True)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag each request with an id and log planner traffic as one JSON line."""
    req_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = req_id
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception:
        logger.exception("request_failed %s", _request_line(request, req_id, started))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/study-sessions"):
        logger.info("request_done %s",
                    _request_line(request, req_id, started, status_code=response.status_code))
    return response


def _subtask_payload(st: models.SessionSubtask) -> dict:
    return {
        'id': st.id,
        'description': st.description,
        'estimated_minutes': st.estimated_minutes,
        'actual_minutes': st.actual_minutes,
        'completed': st.completed,
        'sort_order': st.sort_order,
    }


def _session_payload(row: models.StudySession, svc: services.StudySessionService) -> dict:
    return {
        'id': row.id,
        'title': row.title,
        'scheduled_start': isoformat_utc(row.scheduled_start),
        'scheduled_end': isoformat_utc(row.scheduled_end),
        'actual_start': isoformat_utc(row.actual_start),
        'actual_end': isoformat_utc(row.actual_end),
        'notes': row.notes,
        'status': svc.status(row).value,
        'subtasks': [_subtask_payload(st) for st in row.subtasks],
    }


def _draft_payload(d: SessionDraft) -> dict:
    return {
        'title': d.title,
        'scheduled_start': isoformat_utc(d.scheduled_start),
        'scheduled_end': isoformat_utc(d.scheduled_end),
        'notes': d.notes,
    }


def _slot_payload(s: Slot) -> dict:
    return {'start': isoformat_utc(parse_timestamp(s.start)), 'end': isoformat_utc(parse_timestamp(s.end))}


def _day_stats_payload(idx: int, d: DayStats) -> dict:
    return {'day_index': idx, 'planned': d.planned, 'actual': d.actual, 'sessions': d.session_count}


def _capacity_payload(b: CapacityBucket) -> dict:
    return {
        'day_index': b.day_index,
        'used': b.used_minutes,
        'total': b.total_minutes,
        'overcapacity': b.overcapacity,
        'percent': b.percent,
    }


def _owned(call, *args):
    """Run a service call and map ownership errors to HTTP responses."""
    try:
        return call(*args)
    except services.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except services.AccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns the existing user if the username is already taken so the
    operation can be repeated safely by scripts and tests.
    """
    auth = services.AuthService(db)
    existing = auth.user_repo.get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    user = auth.register(payload.username, payload.password)
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login', response_model=TokenOut)
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token."""
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return TokenOut(access_token=token)


@app.post('/study-sessions')
def create_session(payload: StudySessionIn, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Create a single study session."""
    svc = services.StudySessionService(db, clock)
    try:
        row = svc.create(user.id, payload.title, payload.scheduled_start, payload.scheduled_end,
                         payload.actual_start, payload.actual_end, payload.notes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_payload(row, svc)


@app.post('/study-sessions/bulk')
def bulk_create_sessions(payload: BulkCreateIn, db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Create many sessions at once; one invalid item rejects the whole batch."""
    svc = services.StudySessionService(db, clock)
    drafts = [SessionDraft(title=s.title, scheduled_start=s.scheduled_start,
                           scheduled_end=s.scheduled_end, notes=s.notes) for s in payload.sessions]
    try:
        rows = svc.bulk_create(user.id, drafts)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [_session_payload(r, svc) for r in rows]


@app.get('/study-sessions')
def list_sessions(start_date: Optional[str] = None, end_date: Optional[str] = None,
                  db: Session = Depends(get_session), user: models.User = Depends(get_current_user),
                  clock: Clock = Depends(get_clock)):
    """List the user's sessions, optionally limited to a scheduled-start range."""
    start = parse_timestamp(start_date) if start_date else None
    end = parse_timestamp(end_date) if end_date else None
    if (start_date and start is None) or (end_date and end is None):
        raise HTTPException(status_code=400, detail='invalid date range')
    svc = services.StudySessionService(db, clock)
    return [_session_payload(r, svc) for r in svc.list_sessions(user.id, start, end)]


@app.get('/study-sessions/week')
def current_week(offset: int = 0, user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Monday-Sunday window of the week `offset` weeks from now, with its ISO week."""
    window = compute_week_window(offset, clock, resolve_timezone(settings.TIMEZONE))
    return {
        'start': window.start.isoformat(timespec='milliseconds'),
        'end': window.end.isoformat(timespec='milliseconds'),
        'iso_week': iso_week_number(window.start),
        'label': week_label(window.start),
    }


@app.get('/study-sessions/week-stats')
def get_week_stats(week_start: date, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Planned vs. actual minutes per weekday (Monday = 0)."""
    svc = services.StudySessionService(db, clock)
    days = svc.week_stats(user.id, services.local_week_start(week_start))
    return [_day_stats_payload(i, d) for i, d in enumerate(days)]


@app.get('/study-sessions/capacity')
def get_capacity(week_start: date, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Used vs. available minutes per weekday for the given week."""
    buckets = services.CapacityService(db).week_capacity(user.id, services.local_week_start(week_start))
    return [_capacity_payload(b) for b in buckets]


@app.put('/study-sessions/capacity/{weekday}')
def set_capacity(weekday: int, payload: CapacityIn, db: Session = Depends(get_session),
                 user: models.User = Depends(get_current_user)):
    """Set the capacity for one weekday (0 = Monday)."""
    try:
        row = services.CapacityService(db).set_capacity(user.id, weekday, payload.minutes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'weekday': row.weekday, 'minutes': row.minutes}


@app.post('/study-sessions/suggest')
def suggest_sessions(payload: SuggestionIn, db: Session = Depends(get_session),
                     user: models.User = Depends(get_current_user)):
    """Preview suggested sessions with conflicts resolved; nothing is stored."""
    out = services.PlanningService(db).suggest(user.id, payload.to_request(settings.TIMEZONE), payload.drop_conflicts)
    out['sessions'] = [_draft_payload(d) for d in out['sessions']]
    return out


@app.post('/study-sessions/plan')
def plan_sessions(payload: SuggestionIn, db: Session = Depends(get_session),
                  user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Suggest, resolve conflicts and persist the accepted sessions.

    The response reports requested vs. planned minutes and how many
    suggestions were dropped, so shortfall is visible to the caller.
    """
    try:
        out = services.PlanningService(db).plan(user.id, payload.to_request(settings.TIMEZONE), payload.drop_conflicts)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    svc = services.StudySessionService(db, clock)
    out['sessions'] = [_session_payload(r, svc) for r in out.pop('created')]
    return out


@app.post('/study-sessions/template')
def apply_template(payload: TemplatePlanIn, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Create the sessions of a weekly template for the week starting `week_start`."""
    if payload.week_start.weekday() != 0:
        raise HTTPException(status_code=400, detail='week_start must be a Monday')
    out = services.PlanningService(db).apply_template(
        user.id, payload.week_start, [i.to_item() for i in payload.items], payload.drop_conflicts)
    svc = services.StudySessionService(db, clock)
    out['sessions'] = [_session_payload(r, svc) for r in out.pop('created')]
    return out


@app.post('/study-sessions/distribute')
def distribute_sessions(payload: DistributeIn, db: Session = Depends(get_session),
                        user: models.User = Depends(get_current_user)):
    """Preview packing sessions into explicit free slots."""
    result = services.PlanningService(db).distribute(
        payload.slots(), payload.session_minutes, payload.total_minutes, payload.gaps())
    return {
        'sessions': [{'title': payload.title, **_slot_payload(s)} for s in result.sessions],
        'minutes_unplaced': result.minutes_unplaced,
    }


@app.get('/study-sessions/{session_id}')
def get_study_session(session_id: int, db: Session = Depends(get_session),
                      user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    svc = services.StudySessionService(db, clock)
    return _session_payload(_owned(svc.get_owned, user.id, session_id), svc)


@app.patch('/study-sessions/{session_id}')
def update_study_session(session_id: int, payload: StudySessionUpdate, db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    """Partially update a session; status in the response reflects the change."""
    svc = services.StudySessionService(db, clock)
    changes = payload.model_dump(exclude_unset=True)
    return _session_payload(_owned(svc.update, user.id, session_id, changes), svc)


@app.delete('/study-sessions/{session_id}')
def delete_study_session(session_id: int, db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    _owned(services.StudySessionService(db, clock).delete, user.id, session_id)
    return {'status': 'ok'}


@app.post('/study-sessions/{session_id}/subtasks')
def create_subtask(session_id: int, payload: SubtaskIn, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    svc = services.StudySessionService(db, clock)
    st = _owned(svc.add_subtask, user.id, session_id, payload.description,
                payload.estimated_minutes, payload.sort_order)
    return _subtask_payload(st)


@app.patch('/study-sessions/{session_id}/subtasks/{subtask_id}')
def update_subtask(session_id: int, subtask_id: int, payload: SubtaskUpdate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    svc = services.StudySessionService(db, clock)
    changes = payload.model_dump(exclude_unset=True)
    return _subtask_payload(_owned(svc.update_subtask, user.id, session_id, subtask_id, changes))


@app.delete('/study-sessions/{session_id}/subtasks/{subtask_id}')
def delete_subtask(session_id: int, subtask_id: int, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user), clock: Clock = Depends(get_clock)):
    _owned(services.StudySessionService(db, clock).delete_subtask, user.id, session_id, subtask_id)
    return {'status': 'ok'}


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
