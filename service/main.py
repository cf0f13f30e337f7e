"""
PolicyGate FastAPI Service

REST API for the paid-partnership policy engine.

Endpoints:
    GET    /health               - Liveness probe (process alive)
    GET    /version              - Version info
    GET    /pack                 - Loaded policy pack info
    POST   /evaluate             - Evaluate one post, returns the verdict
    POST   /evaluate/batch       - Evaluate many posts, returns a batch report
    GET    /confidence/weights   - Current confidence weights
    PUT    /confidence/weights   - Merge new confidence weights
    DELETE /confidence/weights   - Reset confidence weights to defaults
"""

import json
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from policygate import __version__
from policygate.engine import PolicyEngine
from policygate.exceptions import (
    ConfigurationError,
    InvalidInputError,
    PolicyGateError,
    wrap_internal_exception,
)
from policygate.pack_loader import PackLoaderError, default_pack, load_pack_yaml

# Import routers
from service.routers import confidence, evaluate

# =============================================================================
# Configuration
# =============================================================================

PG_ENGINE_VERSION = os.getenv("PG_ENGINE_VERSION", __version__)
PG_LOG_LEVEL = os.getenv("PG_LOG_LEVEL", "INFO")
PG_PACK_PATH = os.getenv("PG_PACK_PATH")
PG_DOCS_ENABLED = os.getenv("PG_DOCS_ENABLED", "true").lower() == "true"
PG_MAX_BATCH_SIZE = int(os.getenv("PG_MAX_BATCH_SIZE", "100"))

# =============================================================================
# Logging Setup (Structured JSON)
# =============================================================================

class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    EXTRA_FIELDS = (
        "request_id",
        "verdict_id",
        "violation",
        "gate",
        "outcome",
        "matched",
        "duration_ms",
    )

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Add extra fields if present
        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        return json.dumps(log_entry)

# Configure logging for the whole package (engine and gate records included)
logger = logging.getLogger("policygate")
logger.setLevel(getattr(logging, PG_LOG_LEVEL.upper()))
handler = logging.StreamHandler()
handler.setFormatter(JSONFormatter())
logger.addHandler(handler)

# =============================================================================
# Policy Pack
# =============================================================================

def load_engine() -> PolicyEngine:
    """Build the engine from PG_PACK_PATH, or the built-in pack."""
    if PG_PACK_PATH:
        try:
            pack = load_pack_yaml(PG_PACK_PATH)
        except PackLoaderError as e:
            raise wrap_internal_exception(e, details={"path": PG_PACK_PATH}) from e
    else:
        pack = default_pack()
    return PolicyEngine(pack, logger=logging.getLogger("policygate.engine"))


ENGINE = load_engine()
PACK_HASH_SHORT = ENGINE.pack.pack_hash[:16]

# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="PolicyGate",
    description="Paid partnership / undisclosed commercial content policy engine",
    version=PG_ENGINE_VERSION,
    docs_url="/docs" if PG_DOCS_ENABLED else None,
    redoc_url="/redoc" if PG_DOCS_ENABLED else None,
    openapi_url="/openapi.json" if PG_DOCS_ENABLED else None,
)

# CORS (restrict in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

# Include routers
evaluate.set_engine(ENGINE, max_batch_size=PG_MAX_BATCH_SIZE)
confidence.set_engine(ENGINE)
app.include_router(evaluate.router)
app.include_router(confidence.router)

# =============================================================================
# Request/Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    engine_version: str
    pack_version: str

class VersionResponse(BaseModel):
    """Version info response."""
    engine_version: str
    pack_id: str
    pack_version: str
    pack_hash: str
    taxonomy_version: str

class PackResponse(BaseModel):
    """Policy pack info response."""
    pack_id: str
    pack_version: str
    pack_hash: str
    name: str
    description: str
    industries: List[str]
    industry_count: int
    phrase_counts: Dict[str, int]
    label_catalog_size: int
    weights: Dict[str, float]

# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id
    start_time = time.time()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "request_id": request_id,
            "duration_ms": round((time.time() - start_time) * 1000, 2),
        }
    )
    return response

# =============================================================================
# Error Handling
# =============================================================================

def error_status(error: PolicyGateError) -> int:
    """HTTP status for a public error."""
    if isinstance(error, InvalidInputError):
        return 422
    if isinstance(error, ConfigurationError):
        return 400
    return 500


@app.exception_handler(PolicyGateError)
async def policygate_error_handler(request: Request, exc: PolicyGateError):
    request_id = getattr(request.state, "request_id", "unknown")
    if exc.request_id is None:
        exc.request_id = request_id
    logger.warning(str(exc), extra={"request_id": request_id})
    return JSONResponse(status_code=error_status(exc), content=exc.to_dict())

# =============================================================================
# Health / Info Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Liveness probe - checks if process is alive.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        engine_version=PG_ENGINE_VERSION,
        pack_version=ENGINE.pack.pack_version,
    )

@app.get("/version", response_model=VersionResponse, tags=["Info"])
async def version_info():
    """Engine and pack versions."""
    return VersionResponse(
        engine_version=PG_ENGINE_VERSION,
        pack_id=ENGINE.pack.pack_id,
        pack_version=ENGINE.pack.pack_version,
        pack_hash=ENGINE.pack.pack_hash,
        taxonomy_version=ENGINE.pack.taxonomies.version,
    )

@app.get("/pack", response_model=PackResponse, tags=["Info"])
async def pack_info():
    """Summary of the loaded policy pack."""
    return PackResponse(**ENGINE.pack.to_dict())

@app.on_event("startup")
async def startup_event():
    """Log startup info."""
    logger.info("PolicyGate starting", extra={"request_id": "startup"})
    logger.info(f"Engine: v{PG_ENGINE_VERSION}")
    logger.info(f"Pack: {ENGINE.pack.pack_id} v{ENGINE.pack.pack_version} ({PACK_HASH_SHORT})")
    logger.info(f"Docs enabled: {PG_DOCS_ENABLED}")

@app.on_event("shutdown")
async def shutdown_event():
    """Log shutdown."""
    logger.info("PolicyGate shutting down")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
