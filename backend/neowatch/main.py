from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from neowatch.core.config import settings
from neowatch.core.context import build_context
from neowatch.core.errors import BudgetExceeded, InvalidArgument, NeoWatchError, RateLimited, TransportFailure
from neowatch.api.api import api_router
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "context", None) is None:
        app.state.context = build_context(settings)
    logger.info(f"{settings.PROJECT_NAME} started (cache backend: {settings.CACHE_BACKEND})")
    yield
    await app.state.context.close()
    app.state.context = None


# ── Rate Limiting Setup ──
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.API_RATE_LIMIT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Near-Earth object approach tracking API: upcoming close approaches from NASA NeoWs, ranked by estimated impact energy.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    license_info={
        "name": "MIT",
    },
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


# ── Pipeline errors → HTTP ──
def _status_for(exc: NeoWatchError) -> int:
    if isinstance(exc, InvalidArgument):
        return 400
    if isinstance(exc, (BudgetExceeded, RateLimited)):
        return 429
    if isinstance(exc, TransportFailure):
        return 404 if exc.status_code == 404 else 502
    return 500


@app.exception_handler(NeoWatchError)
async def neowatch_error_handler(request: Request, exc: NeoWatchError):
    status = _status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.get("/")
def read_root():
    return {"message": "Welcome to NeoWatch API", "status": "active", "version": "1.0.0"}

@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(api_router, prefix=settings.API_V1_STR)
