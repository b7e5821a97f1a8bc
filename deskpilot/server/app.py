"""FastAPI app creation, CORS, global state, auth and rate limiting."""

import hmac
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..app import DeskPilot
from ..constants import DEFAULT_SESSION_ID
from ..errors import RateLimitExceeded

logger = logging.getLogger(__name__)

_config_path = os.getenv("DESKPILOT_CONFIG", "config.yaml")

_app: Optional[DeskPilot] = None


def _try_load_app():
    """Attempt to load DeskPilot from config. Logs and stays unconfigured on failure."""
    global _app
    try:
        if os.path.exists(_config_path):
            _app = DeskPilot(_config_path)
            logger.info(f"DeskPilot loaded from {_config_path}")
        else:
            logger.warning(f"Config not found: {_config_path}")
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        _app = None


def require_app() -> DeskPilot:
    """Raise 503 if app is not configured. Lazy-loads on first call."""
    global _app
    if _app is None:
        _try_load_app()
    if _app is None:
        raise HTTPException(503, "Not configured")
    return _app


def set_app(new_app: Optional[DeskPilot]):
    """Set the global _app instance."""
    global _app
    _app = new_app


def get_app_instance() -> Optional[DeskPilot]:
    """Get the current global _app instance (may be None)."""
    return _app


def token_matches(token: Optional[str], secret: str) -> bool:
    """Constant-time comparison of a presented token with the API secret."""
    if not token or not secret:
        return False
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


async def verify_api_key(request: Request):
    """Require ``Authorization: Bearer <api_secret>``."""
    app = require_app()
    auth_header = request.headers.get("authorization", "")
    token = auth_header[7:] if auth_header.startswith("Bearer ") else None
    if not token_matches(token, app.api_secret):
        raise HTTPException(401, "Unauthorized")


async def enforce_rate_limit(session_id: str = DEFAULT_SESSION_ID):
    """Count the request against the session's window; 429 when exhausted."""
    orchestrator = await require_app().get_orchestrator()
    decision = await orchestrator.check_rate_limit(session_id)
    if not decision.allowed:
        raise RateLimitExceeded(decision)


# --- Exception handlers ---

async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    retry_after = exc.decision.retry_after_seconds
    return JSONResponse(
        {"error": "Rate limit exceeded", "retryAfter": retry_after},
        status_code=429,
        headers={"Retry-After": str(retry_after), "X-RateLimit-Reset": str(retry_after)},
    )


@asynccontextmanager
async def _lifespan(api: FastAPI):
    app = get_app_instance()
    if app is None:
        _try_load_app()
        app = get_app_instance()
    if app is not None:
        await app.start()
    try:
        yield
    finally:
        app = get_app_instance()
        if app is not None:
            await app.shutdown()


# --- FastAPI app creation (after all helpers are defined to avoid circular imports) ---

def _create_api() -> FastAPI:
    """Create and configure the FastAPI app with routes."""
    _api = FastAPI(title="DeskPilot", version="0.1.0", lifespan=_lifespan)

    allowed_origins_str = os.getenv("DESKPILOT_ALLOWED_ORIGINS", "*")
    allowed_origins = [o.strip() for o in allowed_origins_str.split(",") if o.strip()]
    _api.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _api.add_exception_handler(StarletteHTTPException, _http_error_handler)
    _api.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    from .routes import register_routes
    register_routes(_api)
    return _api


api = _create_api()
