import json
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from seedvault.auth import basic_auth_middleware
from seedvault.dependencies import limiter, settings
from seedvault.routers import (
    categories_router,
    images_router,
    scanner_router,
    seasons_router,
    seeds_router,
    trays_router,
    wishlist_router,
)
from seedvault.services.errors import ServiceError
from seedvault.storage import ensure_bucket_exists

logger = logging.getLogger("seedvault")
logging.basicConfig(level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.s3_ensure_bucket_on_startup:
        ensure_bucket_exists()
    yield


app = FastAPI(
    title="SeedVault API",
    description="Garden seed inventory, germination trays and season wishlists",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Registered innermost first: auth, security headers, request logging, CORS.
app.middleware("http")(basic_auth_middleware)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(self), microphone=(), geolocation=()"
    return response


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))
    request.state.request_id = req_id

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = req_id
        return response
    finally:
        payload = {
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "role": getattr(request.state, "role", None),
        }
        logger.info(json.dumps(payload))


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.include_router(categories_router)
app.include_router(seeds_router)
app.include_router(trays_router)
app.include_router(seasons_router)
app.include_router(wishlist_router)
app.include_router(scanner_router)
app.include_router(images_router)

Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "SeedVault API",
        "version": "1.0.0",
        "docs": "/docs",
        "vault": "/seeds",
        "trays": "/trays",
        "wishlist": "/wishlist/{token}",
    }
