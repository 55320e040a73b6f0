"""
FastAPI application for the LTI bridge.

The Redis client and the consumer credentials are set up once in the
lifespan handler; request handlers only use the module singletons.
"""

from dotenv import load_dotenv

# Load .env file before any other imports that might need env vars
load_dotenv()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from ltibridge.lti.routes import get_launch_context_store, init_credential_lookup, init_lti_storage
from ltibridge.lti.routes import router as lti_router
from ltibridge.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    - startup: connect launch context storage, load consumer credentials
    """
    settings = get_settings()
    init_lti_storage(settings.redis_url, ttl=settings.session_max_age)
    init_credential_lookup()
    logger.info("LTI bridge started (env=%s)", settings.env)

    yield

    logger.info("LTI bridge stopped")


class CSPMiddleware(BaseHTTPMiddleware):
    """Allow the LMS to embed tools in an iframe via CSP frame-ancestors."""

    def __init__(self, app, frame_ancestors: str):
        super().__init__(app)
        self.frame_ancestors = frame_ancestors

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["Content-Security-Policy"] = f"frame-ancestors {self.frame_ancestors}"
        # Remove X-Frame-Options so CSP frame-ancestors takes precedence
        if "X-Frame-Options" in response.headers:
            del response.headers["X-Frame-Options"]
        return response


def get_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="LTI Bridge",
        description="LTI 1.x launch and content-item return endpoints",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(CSPMiddleware, frame_ancestors=settings.csp_frame_ancestors)

    # LTI launches arrive cross-site inside the LMS iframe
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="none" if settings.https_only else "lax",
        https_only=settings.https_only,
    )

    app.include_router(lti_router)  # LTI routes at /lti*

    @app.get("/health")
    async def health():
        try:
            redis_ok = get_launch_context_store().ping()
        except Exception as exc:
            logger.warning("Health check: launch storage unavailable: %s", exc)
            redis_ok = False
        return {"status": "healthy" if redis_ok else "degraded", "redis": redis_ok}

    return app


# Create the app instance
app = get_app()
