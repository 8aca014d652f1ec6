"""
main.py — caseflow application entry point

Wires middleware (sessions, rate limiting, request IDs), the error handlers
that render every failure as ErrorResponse, and the routers.

Called by: uvicorn (caseflow.main:app)
Depends on: config, logging_config, startup, routers/*
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from . import __version__
from .config import settings
from .errors import CaseflowError
from .http_client import close_clients
from .logging_config import setup_logging
from .rate_limit import limiter
from .routers import contacts, documents, files, history, intake, leads, push, tasks
from .schemas.errors import ErrorResponse
from .schemas.responses import HealthResponse
from .startup import run_startup_migrations


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    run_startup_migrations()
    logger.info("caseflow {} started", __version__)
    yield
    await close_clients()


app = FastAPI(title="caseflow", version=__version__, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SessionMiddleware, secret_key=settings.secret_key, https_only=settings.app_url.startswith("https"))


# ── Request ID + access log ──────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} -> {} ({:.1f}ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
    response.headers["X-Request-ID"] = request_id
    return response


# ── Error handlers ───────────────────────────────────────────────────


def _error_response(request: Request, status_code: int, error: str, detail: list | None = None):
    body = ErrorResponse(
        error=error,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(CaseflowError)
async def caseflow_error_handler(request: Request, exc: CaseflowError):
    if exc.status_code >= 500:
        logger.error("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc.message)
    return _error_response(request, exc.status_code, exc.message, exc.detail)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return _error_response(request, 422, "Validation error", errors)


# ── Routes ───────────────────────────────────────────────────────────


@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "ok", "version": __version__}


app.include_router(intake.router)
app.include_router(leads.router)
app.include_router(contacts.router)
app.include_router(documents.router)
app.include_router(history.router)
app.include_router(tasks.router)
app.include_router(files.router)
app.include_router(push.router)
