"""
readit — service entry point

Serves health endpoints only; the process exists so the database tooling
has something to run and deploy (``readit run``, ``readit run/live``).

Middleware adds a short request id, API version and security headers to
every response and logs request timing with the id bound to the log
context.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .database import get_engine, ping
from .logging_config import setup_logging
from .migrations import VersionStore
from .schemas.responses import DatabaseHealthResponse, ErrorResponse, HealthResponse

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    settings = get_settings()
    logger.info("readit {} starting ({})", __version__, settings.app_env)
    yield
    logger.info("readit shutting down")


app = FastAPI(title="readit", version=__version__, lifespan=lifespan)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} → {} ({:.1f}ms)", request.method, request.url.path, response.status_code, elapsed_ms
        )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-API-Version"] = "v1"
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = ErrorResponse(error=str(exc.detail), status_code=exc.status_code, request_id=_request_id(request))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = ErrorResponse(
        error="Validation error",
        status_code=422,
        request_id=_request_id(request),
        detail=[{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()],
    )
    return JSONResponse(status_code=422, content=body.model_dump())


def get_db_engine() -> Engine:
    return get_engine()


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", version=__version__)


@app.get("/health/db", response_model=DatabaseHealthResponse)
def health_db(engine: Engine = Depends(get_db_engine)):
    unavailable = DatabaseHealthResponse(status="unavailable", database="unreachable")
    if not ping(engine):
        return JSONResponse(status_code=503, content=unavailable.model_dump())

    store = VersionStore(engine, get_settings().migrations_table)
    try:
        version, dirty = store.get() if store.exists() else (-1, False)
    except SQLAlchemyError as e:
        logger.warning("Reading schema version failed: {}", e)
        return JSONResponse(status_code=503, content=unavailable.model_dump())
    return DatabaseHealthResponse(
        status="degraded" if dirty else "ok",
        database="ok",
        schema_version=None if version < 0 else version,
        dirty=dirty,
    )
