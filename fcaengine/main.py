"""
FCA Engine — FastAPI Application Entry Point

POST /v1/condition/...     → Condition Index normalization and aggregation
POST /v1/deterioration/... → failure prediction, pattern analysis, curves
POST /v1/priority/...      → composite priority scores and project ranking
GET  /v1/health            → health check
GET  /docs                 → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from fcaengine.api.condition_endpoint import router as condition_router
from fcaengine.api.deterioration_endpoint import router as deterioration_router
from fcaengine.api.priority_endpoint import router as priority_router
from fcaengine.core.config import get_settings

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer() if get_settings().app_env == "development"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(get_settings().log_level),
)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "fca_engine_starting",
        engine_version=settings.engine_version,
        insights_enabled=settings.insights_enabled,
        kafka_enabled=settings.kafka_enabled,
    )
    yield
    logger.info("fca_engine_shutting_down")


app = FastAPI(
    title="FCA Engine",
    description="Condition Index aggregation, deterioration prediction and capital priority scoring",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (assessment app + internal tools) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)

# ── Prometheus metrics ──
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ──
app.include_router(condition_router)
app.include_router(deterioration_router)
app.include_router(priority_router)


@app.get("/v1/health", tags=["health"])
async def health():
    return {"status": "ok", "service": "fca-engine", "engine_version": get_settings().engine_version}


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "fca-engine",
        "version": "1.0.0",
        "docs": "/docs",
        "predict": "POST /v1/deterioration/predict",
    }
