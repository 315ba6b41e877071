from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from habitrollup.db.base import dispose_engine, get_db
from habitrollup.core.config import settings
from habitrollup.core.logging import setup_logging
from habitrollup.routers import entries as entries_router
from habitrollup.routers import habits as habits_router
from habitrollup.routers import progress as progress_router
from habitrollup.routers import stats as stats_router
from habitrollup.core.errors import (
    HabitRollupException,
    habit_rollup_exception_handler,
    store_unavailable_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(settings.LOG_FORMAT, settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    dispose_engine()


app = FastAPI(
    title="Habit Rollup API",
    description=(
        "**Habit progress aggregation**\n\n"
        "Records daily habit completions, evaluates sub-task progress rules and "
        "rolls the ledger up into daily, weekly and monthly views.\n\n"
        "Every request carries the caller's identity in the `X-User-Id` header. "
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(HabitRollupException, habit_rollup_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(OperationalError, store_unavailable_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(habits_router.router)
app.include_router(entries_router.router)
app.include_router(progress_router.router)
app.include_router(stats_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
