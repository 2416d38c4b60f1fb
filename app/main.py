"""FastAPI application entry point with lifespan, logging, and middleware."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.models import HealthResponse
from app.routers import catalog, movies
from app.services.cache import TTLCache
from app.services.database import DatabaseService
from app.services.movies import MovieService
from app.services.pagination import PaginationError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = DatabaseService(settings.db_path)
    db.init_schema()
    cache = TTLCache()

    movies.init_router(MovieService(db, cache))
    catalog.init_router(db)

    app.state.db = db
    app.state.cache = cache

    logger.info("Application started: db=%s", settings.db_path)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Movie Catalog",
    description=(
        "Movie catalog API with cursor-paginated listings, per-user "
        "like/dislike status and a cached recent-movies feed."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s → %d  (%.0f ms)",
        request.method, request.url.path, response.status_code, elapsed,
    )
    return response


@app.exception_handler(PaginationError)
async def pagination_error_handler(request: Request, exc: PaginationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal error occurred. Please try again."},
    )


@app.get("/health", response_model=HealthResponse, tags=["system"])
async def health():
    """Check database connectivity."""
    db: DatabaseService = app.state.db
    db_ok = db.health_check()
    return HealthResponse(status="healthy" if db_ok else "degraded", database=db_ok)


app.include_router(movies.router)
app.include_router(catalog.router)
