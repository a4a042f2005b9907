# lpr_hub/main.py
"""
FastAPI application entry point.
Wires the entity store, change notifier and dashboard sessions at startup,
and registers error handlers and all routers.
"""

import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from lpr_hub.routers import events, sites, cameras, dashboard, health
from lpr_hub.config import settings
from lpr_hub.database import build_engine, make_session_factory, create_tables
from lpr_hub.errors import LprHubError
from lpr_hub.services.change_notifier import ChangeNotifier
from lpr_hub.services.dashboard_session import DashboardSessionManager
from lpr_hub.services.entity_store import EntityStore
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)


# ── Startup / Shutdown ───────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 LPR Hub starting up...")
    engine = build_engine(settings.DATABASE_URL)
    create_tables(engine)
    notifier = ChangeNotifier()
    store = EntityStore(make_session_factory(engine), notifier)

    app.state.engine = engine
    app.state.notifier = notifier
    app.state.store = store
    app.state.dashboards = DashboardSessionManager(store, notifier)
    logger.info(f"✅ Database ready: {settings.DATABASE_URL}")
    logger.info(f"📡 Dashboard push interval: {settings.DASHBOARD_PUSH_INTERVAL_SECONDS}s")
    yield

    logger.info("🛑 LPR Hub shutting down...")
    await app.state.dashboards.shutdown()
    notifier.reset()
    engine.dispose()


app = FastAPI(
    title="LPR Hub",
    description="License-plate detection ingestion, site/camera registry and live dashboard feed.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (allow dashboards on other origins to call the API) ────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    line = f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)"
    if response.status_code >= 400:
        logger.warning(line)
    else:
        logger.debug(line)
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(LprHubError)
async def lpr_hub_error_handler(request: Request, exc: LprHubError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.kind, "detail": exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "InternalError", "detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(events.router,    tags=["📡 Detections"])
app.include_router(sites.router,     prefix="/api", tags=["🏢 Sites"])
app.include_router(cameras.router,   prefix="/api", tags=["📷 Cameras"])
app.include_router(dashboard.router, tags=["📊 Dashboard"])
app.include_router(health.router,    prefix="/api", tags=["💚 Health"])

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")
