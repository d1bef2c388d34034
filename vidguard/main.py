"""
VidGuard API — Application entry point.

Bootstraps FastAPI, wires up middleware and rate limiting, registers route
groups, and cancels in-flight analysis sessions on shutdown.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from vidguard.core.config import settings
from vidguard.core.rate_limit import limiter
from vidguard.routes.detector import reset_sessions
from vidguard.routes.detector import router as detector_router
from vidguard.routes.health import router as health_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting VidGuard API (env: %s, model: %s)", settings.environment, settings.model_label)
    yield
    logger.info("Shutting down VidGuard API")
    reset_sessions()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="VidGuard API",
    description=(
        "Staged deepfake analysis for uploaded videos. "
        "Verdicts are simulated — no real model inference is performed."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit("N/minute") + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(detector_router)


@app.get("/", tags=["root"])
async def root():
    return {
        "name": "VidGuard API",
        "version": "0.1.0",
        "docs": "/docs",
    }
