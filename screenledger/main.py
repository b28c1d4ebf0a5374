import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from screenledger.db.base import get_db, get_session_factory
from screenledger.core.clock import Clock
from screenledger.core.config import settings
from screenledger.core.logging import configure_logging
from screenledger.routers import goals as goals_router
from screenledger.routers import ledger as ledger_router
from screenledger.routers import gamification as gamification_router
from screenledger.core.errors import (
    LedgerError,
    ledger_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from screenledger.services.ledger import AccountabilityLedger
from screenledger.services.shared_state import SharedRegion

logger = logging.getLogger(__name__)


def build_ledger() -> AccountabilityLedger:
    shared = SharedRegion(settings.SHARED_STATE_PATH) if settings.SHARED_STATE_PATH else None
    return AccountabilityLedger(
        session_factory=get_session_factory(),
        clock=Clock(settings.TIMEZONE),
        settings=settings,
        shared=shared,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    # A ledger installed beforehand (tests) is kept as is.
    if getattr(app.state, "ledger", None) is None:
        ledger = build_ledger()
        report = ledger.migrate()
        logger.info(
            "Ledger ready (tz=%s, legacy transactions tagged=%d)",
            settings.TIMEZONE, report.transactions_tagged,
        )
        app.state.ledger = ledger
    yield


app = FastAPI(
    title="Screen Ledger API",
    description=(
        "**Screen-time accountability ledger and limit-resolution engine**\n\n"
        "Tracks weekly credits and the accountability fee, resolves each app's "
        "effective daily limit from its overrides, and derives streaks, pet "
        "health and achievements.\n\n"
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
app.add_exception_handler(LedgerError, ledger_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(goals_router.router)
app.include_router(ledger_router.router)
app.include_router(gamification_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as exc:
        logger.warning("Health check failed: %s", exc)
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
