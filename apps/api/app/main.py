import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.dev import router as dev_router
from app.api.errors import install_error_handlers
from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.db import engine
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIdMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.redis_client import ping_redis

configure_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(title="Rollcall API")
install_error_handlers(app)

# Middleware ordering matters.
# Starlette runs the LAST added middleware FIRST (outermost).
# We want:
# - RequestId + SecurityHeaders to apply even to CORS preflight + rate limit responses
# - CORS to handle preflight properly
# - RateLimit to be closest to the app (innermost)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
def root():
    return {"name": "Rollcall API", "status": "ok"}


@app.get("/health")
def health():
    checks = {"database": "ok", "redis": "ok"}
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health_database_failed")
        checks["database"] = "unavailable"

    if not ping_redis():
        # Rate limiting fails open without redis; report but stay up
        checks["redis"] = "degraded"

    if checks["database"] != "ok":
        return JSONResponse(status_code=503, content={"status": "unavailable", "checks": checks})
    return {"status": "ok" if checks["redis"] == "ok" else "degraded", "checks": checks}


app.include_router(v1_router, prefix="/v1")

if settings.dev_routes_enabled and settings.env == "local":
    app.include_router(dev_router)
