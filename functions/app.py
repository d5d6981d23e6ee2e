"""BORAnaOBRA hub - functions API.

Stateless HTTP handlers for the portal: user administration, AI copy and quizzes,
calendars, lead sync, scheduled sweeps, transcription, plus the data
routes for tasks, notifications, sponsors and strategic leads.

Every error answers with {"success": false, "error": "..."}.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from common.db.database import get_session
from common.errors import HubError

from .routers import (
    calendar,
    copy,
    leads,
    media,
    notifications,
    quizzes,
    reports,
    sponsors,
    strategic,
    sweeps,
    tasks,
    users,
)

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"
FUNCTIONS_PREFIX = "/functions/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"BORAnaOBRA hub functions v{app.version} started")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="BORAnaOBRA hub functions",
    description="Serverless-style handlers and data routes for the operations portal",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.url.path}: {exc.status_code} {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse({"success": False, "error": message}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error in {request.url.path}: {exc}")
    return JSONResponse({"success": False, "error": str(exc) or "Unknown error"}, status_code=500)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {e}"
    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "boranahobra-hub",
        "database": db_status,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


for module in (users, copy, quizzes, calendar, leads, sweeps, media, reports):
    app.include_router(module.router, prefix=FUNCTIONS_PREFIX, tags=["Functions"])

app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(sponsors.router, prefix="/api/sponsors", tags=["Sponsors"])
app.include_router(strategic.router, prefix="/api/strategic-sessions", tags=["Strategic leads"])
