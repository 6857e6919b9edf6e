import logging
from datetime import datetime, timezone

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .custom import ConfigurationError, GeminiError, RateLimitError, SupabaseError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "Our AI service is currently busy. Please wait a minute and try again."
)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "code": status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


async def supabase_error_handler(_request: Request, exc: SupabaseError) -> JSONResponse:
    logger.error("Supabase error: %s (status=%s)", exc.message, exc.status_code)
    return _error_response(500, f"Data store error: {exc.message}")


async def gemini_error_handler(_request: Request, exc: GeminiError) -> JSONResponse:
    logger.error("Gemini error: %s (status=%s)", exc.message, exc.status_code)
    return _error_response(500, exc.message)


async def configuration_error_handler(
    _request: Request, exc: ConfigurationError
) -> JSONResponse:
    logger.error("Configuration error: %s", exc.message)
    return _error_response(500, exc.message)


async def rate_limit_error_handler(_request: Request, exc: RateLimitError) -> JSONResponse:
    logger.warning("Rate limit hit for %s", exc.service)
    return _error_response(429, RATE_LIMIT_MESSAGE)


async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]
    logger.info("Rejected invalid request: %s", messages)
    return _error_response(422, "; ".join(messages))


async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", exc_info=exc)
    return _error_response(500, str(exc) or exc.__class__.__name__)
