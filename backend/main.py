# main.py — TaskBoard API
# Features:
# - Request correlation IDs
# - Security headers
# - WebSocket push channel
# - Health check with snapshot verification
# - All routers registered

import os
import json
import uuid
import time
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from broadcast import BroadcastHub
from collaborators import NullDocumentScanner, default_prober
from database import JsonStore, init_db, get_store
from errors import TaskBoardError
from telemetry import setup_telemetry

VERSION = "1.0.0"

# Logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("taskboard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Starting TaskBoard v{VERSION}...")
    await init_db()
    setup_telemetry(app)
    yield
    logger.info(f"🛑 Shutting down TaskBoard ({len(app.state.hub)} subscribers connected)")


app = FastAPI(
    title="TaskBoard",
    description="Task tracking backend with live updates over WebSocket",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.hub = BroadcastHub()
app.state.prober = default_prober()
app.state.scanner = NullDocumentScanner()

# ============================================================
# CORS
# ============================================================

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://localhost:3851"
    ).split(",")
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID", "X-Correlation-ID"],
    expose_headers=["X-Request-ID", "X-Correlation-ID"],
)


# ============================================================
# MIDDLEWARE: Correlation IDs + Timing
# ============================================================

@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    correlation_id = request.headers.get("X-Correlation-ID", request_id)
    request.state.request_id = request_id
    request.state.correlation_id = correlation_id

    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Response-Time"] = f"{duration:.4f}s"

    logger.info(
        f"{request.method} {request.url.path} → {response.status_code} "
        f"({duration:.3f}s) [rid={request_id[:8]}]"
    )
    return response


# ============================================================
# MIDDLEWARE: Security Headers
# ============================================================

@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

@app.exception_handler(TaskBoardError)
async def taskboard_exception_handler(request: Request, exc: TaskBoardError):
    if exc.http_status >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content={
            **exc.to_dict(),
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Sanitise errors to ensure JSON serialisability
    errors = []
    for err in exc.errors():
        clean_err = {
            "type": str(err.get("type", "unknown")),
            "loc": list(err.get("loc", [])),
            "msg": str(err.get("msg", "")),
        }
        if "input" in err:
            try:
                json.dumps(err["input"])
                clean_err["input"] = err["input"]
            except (TypeError, ValueError):
                clean_err["input"] = str(err["input"])
        errors.append(clean_err)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "request_id": getattr(request.state, "request_id", None),
        },
    )


# ============================================================
# ROUTERS
# ============================================================

from routers import tasks, websocket_router, workspace

app.include_router(tasks.router)
app.include_router(workspace.router)
app.include_router(websocket_router.router)


# ============================================================
# HEALTH & ROOT
# ============================================================

@app.get("/health")
async def health_check(request: Request, store: JsonStore = Depends(get_store)):
    """Health check with snapshot readability verification"""
    try:
        await store.load()
        store_status = "connected"
    except TaskBoardError as e:
        store_status = f"error: {e.message[:100]}"

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "version": VERSION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "store": store_status,
        "subscribers": len(request.app.state.hub),
    }


@app.get("/")
async def root():
    return {
        "name": "TaskBoard",
        "version": VERSION,
        "description": "Task tracking backend with live updates",
        "docs": "/docs",
        "health": "/health",
        "status": "operational",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 3851)),
        reload=os.getenv("ENVIRONMENT") != "production",
        workers=int(os.getenv("WORKERS", 1)),
    )
