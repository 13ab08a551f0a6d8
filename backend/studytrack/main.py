"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the study tracker backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. The authenticated user always comes
from the bearer token.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET/POST /subjects, PUT/DELETE /subjects/{subject_id}
- POST /sessions/log
- GET /sessions
- GET /sessions/daily, /sessions/weekly, /sessions/monthly
- GET /streak
- GET /streak/heatmap
- POST /insights/generate
- GET /insights
- GET/POST /goals, PUT/DELETE /goals/{goal_id}
"""

from fastapi import FastAPI, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, HTMLResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import List, Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import dates, models, repositories, services
from .auth import get_current_user
from .errors import StorageError, StudyTrackError
from .insights import InsightService
from .ledger import SessionLedger
from .progress import ProgressAggregator, WINDOWS
from .streaks import StreakEngine
from .schemas import (
    DailyProgressOut,
    GoalIn,
    GoalOut,
    GoalUpdate,
    HeatmapOut,
    InsightEnvelope,
    InsightOut,
    RegisterIn,
    SessionLogIn,
    SessionLogOut,
    SessionOut,
    StreakOut,
    SubjectIn,
    SubjectOut,
    SubjectUpdate,
    TokenOut,
    WindowProgressOut,
)
from .config import settings

app = FastAPI(title="Study Tracker API")
logger = logging.getLogger("studytrack.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Callable[[current_week_text, previous_week_text], dict | str]; set by the
# deployment, see `insights.InsightGenerator`.
app.state.insight_generator = None

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _log_request(event: str, fields: dict, exc_info: bool = False) -> None:
    message = "%s %s"
    args = (event, json.dumps(fields, ensure_ascii=True))
    if exc_info:
        logger.exception(message, *args)
    else:
        logger.info(message, *args)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    fields = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        _log_request("request_failed", fields, exc_info=True)
        raise
    response.headers["X-Request-ID"] = req_id
    fields["status_code"] = response.status_code
    fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    _log_request("request_done", fields)
    return response


@app.exception_handler(StudyTrackError)
async def study_track_error_handler(request: Request, exc: StudyTrackError):
    detail = exc.message
    if isinstance(exc, StorageError):
        logger.error(
            "storage_error request_id=%s path=%s: %s",
            getattr(request.state, "request_id", ""),
            request.url.path,
            exc.message,
        )
        detail = "internal storage error"
    return JSONResponse(status_code=exc.status_code, content={"detail": detail, "error": exc.error_code})


def _subject_out(s: models.Subject) -> SubjectOut:
    return SubjectOut(
        id=s.id,
        name=s.name,
        tracking_mode=s.tracking_mode,
        target_per_day_minutes=s.target_per_day_minutes,
        target_per_day_questions=s.target_per_day_questions,
        color_code=s.color_code,
    )


def _session_out(r: models.StudySession) -> SessionOut:
    return SessionOut(
        id=r.id,
        subject_id=r.subject_id,
        day=r.day,
        duration_minutes=r.duration_minutes,
        questions_solved=r.questions_solved,
        start_time=r.start_time,
        end_time=r.end_time,
        notes=r.notes,
    )


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns the existing user if the username is already taken so that
    automation and tests can call it repeatedly.
    """
    auth = services.AuthService(db)
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    user = auth.register(payload.username, payload.password)
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login', response_model=TokenOut)
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token."""
    auth = services.AuthService(db)
    token = auth.authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get('/subjects', response_model=List[SubjectOut])
def list_subjects(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List the authenticated user's subjects, newest first."""
    return [_subject_out(s) for s in services.SubjectService(db).list(user.id)]


@app.post('/subjects', response_model=SubjectOut, status_code=201)
def create_subject(payload: SubjectIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    subject = services.SubjectService(db).create(
        user.id,
        payload.name,
        payload.tracking_mode,
        target_per_day_minutes=payload.target_per_day_minutes,
        target_per_day_questions=payload.target_per_day_questions,
        color_code=payload.color_code,
    )
    return _subject_out(subject)


@app.put('/subjects/{subject_id}', response_model=SubjectOut)
def update_subject(subject_id: int, payload: SubjectUpdate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    subject = services.SubjectService(db).update(user.id, subject_id, payload.model_dump(exclude_unset=True))
    return _subject_out(subject)


@app.delete('/subjects/{subject_id}')
def delete_subject(subject_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.SubjectService(db).delete(user.id, subject_id)
    return {'status': 'ok'}


@app.post('/sessions/log', response_model=SessionLogOut)
def log_session(payload: SessionLogIn, response: Response, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Add a study session to today's record for the subject.

    Responds 201 when the day's record was created and 200 when the
    session was merged into an existing record.
    """
    result = SessionLedger(db).log_session(
        user.id,
        payload.subject_id,
        dates.today(),
        duration_delta=payload.duration,
        questions_delta=payload.questions_solved,
        start_time=payload.start_time,
        end_time=payload.end_time,
        notes=payload.notes,
    )
    response.status_code = 201 if result.was_created else 200
    return SessionLogOut(
        message="Study session logged successfully" if result.was_created else "Study session updated successfully",
        was_created=result.was_created,
        session=_session_out(result.session),
    )


@app.get('/sessions', response_model=List[SessionOut])
def list_sessions(
    from_day: Optional[str] = None,
    to_day: Optional[str] = None,
    subject_id: Optional[int] = None,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Stored day records in `[from_day, to_day]` (default: the last 7 days)."""
    to_day = to_day or dates.today()
    from_day = from_day or dates.days_ago(6)
    rows = SessionLedger(db).query_range(user.id, from_day, to_day, subject_id)
    return [_session_out(r) for r in rows]


@app.get('/sessions/daily', response_model=DailyProgressOut)
def daily_progress(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Today's progress for every subject, including untouched ones."""
    today = dates.today()
    return {'day': today, 'progress': ProgressAggregator(db).daily_progress(user.id, today)}


def _window(window: str, db: Session, user: models.User):
    days = WINDOWS[window]
    return {'window': window, 'window_days': days, 'progress': ProgressAggregator(db).window_progress(user.id, days)}


@app.get('/sessions/weekly', response_model=WindowProgressOut)
def weekly_progress(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return _window('weekly', db, user)


@app.get('/sessions/monthly', response_model=WindowProgressOut)
def monthly_progress(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return _window('monthly', db, user)


@app.get('/streak', response_model=StreakOut)
def get_streak(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Current and best streak; zeros before the first session."""
    return StreakEngine(db).get_streak(user.id)


@app.get('/streak/heatmap', response_model=HeatmapOut)
def get_heatmap(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """365 daily activity counts ending today."""
    return {'heatmap': ProgressAggregator(db).heatmap(user.id)}


@app.post('/insights/generate', response_model=InsightOut, status_code=201)
def generate_insights(request: Request, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Generate this week's insight with the configured generator."""
    generator = request.app.state.insight_generator
    if generator is None:
        raise HTTPException(status_code=503, detail='insight generator not configured')
    return InsightService(db).generate(user.id, generator)


@app.get('/insights', response_model=InsightEnvelope)
def get_insights(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """This week's insight, or a fixed encouraging fallback."""
    insight, fallback = InsightService(db).get_weekly(user.id)
    return {'insights': insight, 'fallback': fallback}


def _goal_out(g: models.Goal, names: dict) -> GoalOut:
    return GoalOut(
        id=g.id,
        title=g.title,
        status=g.status,
        due_date=g.due_date,
        subject_id=g.subject_id,
        subject_name=names.get(g.subject_id),
    )


def _subject_names(db: Session, user_id: int) -> dict:
    return {s.id: s.name for s in repositories.SubjectRepository(db).list_for_user(user_id)}


@app.get('/goals', response_model=List[GoalOut])
def list_goals(
    subject_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """List goals, optionally filtered by subject and status, by due date."""
    goals = services.GoalService(db).list(user.id, subject_id=subject_id, status=status)
    names = _subject_names(db, user.id)
    return [_goal_out(g, names) for g in goals]


@app.post('/goals', response_model=GoalOut, status_code=201)
def create_goal(payload: GoalIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    goal = services.GoalService(db).create(user.id, payload.title, subject_id=payload.subject_id, due_date=payload.due_date)
    return _goal_out(goal, _subject_names(db, user.id))


@app.put('/goals/{goal_id}', response_model=GoalOut)
def update_goal(goal_id: int, payload: GoalUpdate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    goal = services.GoalService(db).update(user.id, goal_id, payload.model_dump(exclude_unset=True))
    return _goal_out(goal, _subject_names(db, user.id))


@app.delete('/goals/{goal_id}')
def delete_goal(goal_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.GoalService(db).delete(user.id, goal_id)
    return {'status': 'ok'}


@app.get("/", response_class=HTMLResponse)
def home():
    """Minimal homepage for quick manual testing."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="UTF-8" />
      <title>Study Tracker API</title>
      <style>
        body { font-family: Arial, sans-serif; margin: 32px; }
        a { color: #0a6; }
        .card { max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; }
      </style>
    </head>
    <body>
      <div class="card">
        <h1>Study Tracker API</h1>
        <ul>
          <li><a href="/docs">Swagger UI</a></li>
        </ul>
        <p>Use <code>/auth/register</code> + <code>/auth/login</code> to get a token, create a subject with <code>/subjects</code>, then try <code>/sessions/log</code> and <code>/streak</code>.</p>
      </div>
    </body>
    </html>
    """


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
