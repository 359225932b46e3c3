"""
Balance Proof Service - Main Application
========================================

FastAPI application for private balance threshold proofs.

Version: 1.0.0
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.balance_proof.dependencies import get_key_manager, get_protocol
from services.balance_proof.routes import balances, keys, legacy, proofs, verification
from shared.config import KeyStoreBackend, settings
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse
from shared.zk.exceptions import ZKError


SERVICE_NAME = "balance-proof"
SERVICE_VERSION = "1.0.0"

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=SERVICE_NAME,
)

logger = get_logger(__name__)

# HTTP status for each protocol error code
ERROR_STATUS: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "constraint_unsatisfied": 422,
    "invalid_witness": status.HTTP_400_BAD_REQUEST,
    "malformed_proof": status.HTTP_400_BAD_REQUEST,
    "key_mismatch": status.HTTP_409_CONFLICT,
    "prover_fault": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "setup_fault": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "relation_shape": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "balance_proof_service_starting",
        environment=settings.environment.value,
        port=settings.ports.balance_proof,
        bit_width=settings.zk.bit_width,
        key_store=settings.zk.key_store.value,
    )

    # Startup
    if settings.zk.warm_keys_on_startup:
        try:
            key_id = await get_protocol().warm_keys()
            logger.info("zk_keys_ready", key_id=key_id)
        except ZKError as e:
            logger.error("startup_failed", error=str(e), error_code=e.error_code)
            raise

    yield

    # Shutdown
    logger.info("balance_proof_service_shutting_down")
    if settings.zk.key_store is KeyStoreBackend.REDIS:
        from shared.database.redis import RedisClient

        RedisClient.close()


# Create FastAPI application
app = FastAPI(
    title="Balance Proof Service",
    description="Zero-knowledge proofs that a private balance meets a public threshold",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next: Any) -> Any:
    """Bind a request id to every log line emitted while serving the request."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_context(request_id=request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["x-request-id"] = request_id
    return response


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its dependencies.
    """
    components: dict[str, dict[str, Any]] = {}

    manager = get_key_manager()
    components["keys"] = {
        "status": "healthy" if manager.is_initialized else "pending",
        "relation_id": manager.relation_hash,
        "store": settings.zk.key_store.value,
    }

    if settings.zk.key_store is KeyStoreBackend.REDIS:
        from shared.database.redis import RedisClient

        components["redis"] = await asyncio.to_thread(RedisClient.health_check)

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Balance Proof Service",
        "version": SERVICE_VERSION,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    balances.router,
    prefix="/api/v1/balances",
    tags=["Balances"],
)

app.include_router(
    proofs.router,
    prefix="/api/v1/proofs",
    tags=["ZK Proofs"],
)

app.include_router(
    verification.router,
    prefix="/api/v1/verify",
    tags=["Verification"],
)

app.include_router(
    keys.router,
    prefix="/api/v1/keys",
    tags=["Keys"],
)

app.include_router(legacy.router, tags=["Compatibility"])


# ============================================================================
# Error Handlers
# ============================================================================


def _error_response(status_code: int, error: str, error_code: str | None, **details: Any) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        error_code=error_code,
        status_code=status_code,
        details=details or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(ZKError)
async def zk_exception_handler(request: Request, exc: ZKError) -> JSONResponse:
    """Map protocol errors to their HTTP status."""
    status_code = ERROR_STATUS.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    if status_code >= 500 or exc.error_code == "key_mismatch":
        logger.error(
            "zk_request_failed",
            error_code=exc.error_code,
            error=exc.message,
            path=request.url.path,
        )
    else:
        logger.warning(
            "zk_request_rejected",
            error_code=exc.error_code,
            error=exc.message,
            path=request.url.path,
        )

    # Internal faults are not described to the caller
    message = exc.message if status_code < 500 else "Internal proof system error"
    return _error_response(status_code, message, exc.error_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400)."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    logger.warning("request_validation_failed", path=request.url.path, error_count=len(errors))
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request body",
        "validation_error",
        errors=errors,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return _error_response(exc.status_code, str(exc.detail), None)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", None)


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.balance_proof.main:app",
        host="0.0.0.0",
        port=settings.ports.balance_proof,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
