"""
Order Timing - FastAPI entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import get_settings
from app.core.errors import TimingError
from app.db.factory import build_store
from app.schemas.timing import ErrorResponse
from app.timing.engine import OrderTimingEngine
from app.api import timing, health

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    backend = settings.TIMING_STORE_BACKEND.lower()
    store = build_store(settings)
    if backend == "postgres":
        # Startup: create tables once the ORM models are registered
        from app.db.database import create_tables
        await create_tables()

    engine = OrderTimingEngine(
        store,
        settings.timing_config,
        store_timeout=settings.STORE_TIMEOUT_SECONDS,
    )
    await engine.initialize()
    app.state.timing_store = store
    app.state.timing_engine = engine
    yield
    await store.close()
    if backend == "redis":
        from app.core.redis_client import close_redis
        await close_redis()
    elif backend == "postgres":
        from app.db.database import dispose_engine
        await dispose_engine()


app = FastAPI(
    title="Order Timing Service",
    description="FIFO preparation queue with live remaining-time estimates per order.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True,
                   allow_methods=["*"], allow_headers=["*"])

if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(TimingError)
async def timing_error_handler(request: Request, exc: TimingError):
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=exc.http_status, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s failed unexpectedly", request.method, request.url.path,
                     exc_info=exc)
    body = ErrorResponse(error="InternalError", message="Internal server error")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


app.include_router(timing.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
