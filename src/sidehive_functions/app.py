"""
SideHive Functions - FastAPI application.

Every response, including errors, is wrapped in the envelope
(trace_id, session_id, idempotency_key, duration_ms, ok, deduped).
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sidehive import __version__
from sidehive.core.errors import (
    ClaimConflictError,
    PaymentRequiredError,
    RateLimitedError,
    ValidationFailedError,
)
from sidehive.observability.log_setup import configure_logging
from sidehive_functions.config import settings
from sidehive_functions.envelope import envelope, meta_from_request
from sidehive_functions.request_context import clear_request_context
from sidehive_functions.routes import claim_router, generation_router, session_router

logger = logging.getLogger(__name__)

app = FastAPI(title="SideHive Functions", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Configure logging and report the environment."""
    configure_logging(settings.log_level)
    if settings.sidehive_log_prompts:
        from sidehive_functions.llm.prompt_logger import enable_prompt_logging
        enable_prompt_logging(True)
    logger.info(f"SideHive functions starting ({settings.sidehive_env})")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reset_request_context(request: Request, call_next):
    try:
        return await call_next(request)
    finally:
        clear_request_context()


app.include_router(generation_router, prefix="/functions")
app.include_router(session_router, prefix="/functions")
app.include_router(claim_router, prefix="/functions")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# =============================================================================
# Error handlers
# =============================================================================


def _error_response(request: Request, status_code: int, **payload) -> JSONResponse:
    meta = meta_from_request(request)
    return JSONResponse(status_code=status_code, content=envelope(meta, ok=False, **payload))


def _field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        # loc is ("body", "field", ...) for body fields
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        field_errors.setdefault(name, []).append(error.get("msg", "Invalid value"))
    return field_errors


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    field_errors = _field_errors(exc)
    logger.info(f"Validation failed on {request.url.path}: {field_errors}")
    return _error_response(request, 400, error="Invalid request", field_errors=field_errors)


@app.exception_handler(ValidationFailedError)
async def validation_failed_handler(request: Request, exc: ValidationFailedError):
    logger.info(f"Validation failed on {request.url.path}: {exc.field_errors}")
    return _error_response(request, 400, error=exc.message, field_errors=exc.field_errors)


@app.exception_handler(RateLimitedError)
async def rate_limited_handler(request: Request, exc: RateLimitedError):
    response = _error_response(request, 429, error=exc.message, retry_after=exc.retry_after)
    if exc.retry_after:
        response.headers["Retry-After"] = str(int(exc.retry_after))
    return response


@app.exception_handler(PaymentRequiredError)
async def payment_required_handler(request: Request, exc: PaymentRequiredError):
    return _error_response(request, 402, error=exc.message)


@app.exception_handler(ClaimConflictError)
async def claim_conflict_handler(request: Request, exc: ClaimConflictError):
    return _error_response(request, 409, error=exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, error=exc.detail)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return _error_response(request, 500, error="Internal error", details=str(exc))
