"""
LTI 1.x endpoints.

POST /lti     - Launch: store launch context, redirect to the tool
POST /lti/ci  - Content-item return: signed auto-submit form to the LMS
GET  /lti     - Launch context of the current session as JSON

The OAuth signature of the inbound launch is verified before requests reach
these handlers.
"""

from __future__ import annotations

import logging
import secrets
import time

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ltibridge.settings import get_settings

from . import pages
from .content_item import build_content_item_return, build_content_items, render_launch_form
from .credentials import CredentialLookup, load_credential_lookup
from .errors import ConsumerNotFoundError, ContentItemSigningError, LtiError, SessionNotFoundError
from .params import (
    CONTENT_ITEM_RETURN_URL,
    DATA,
    OAUTH_CONSUMER_KEY,
    extract_launch_context,
    is_test_mode,
    message_type,
)
from .storage import RedisLaunchContextStore
from .tool_uri import redirect_target_for_launch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lti", tags=["lti"])

# Key of the opaque browser session id inside the cookie session
SESSION_ID_KEY = "lti_session_id"
LAUNCHED_AT_KEY = "lti_launched_at"

# A launch POST carrying this parameter is a content-item return
RETURN_CONTENT_ITEM = "returnContentItem"

_ERROR_STATUS = {
    SessionNotFoundError: 404,
    ConsumerNotFoundError: 403,
    ContentItemSigningError: 500,
}

# Singletons (initialized in app lifespan)
_launch_context_store: RedisLaunchContextStore | None = None
_credential_lookup: CredentialLookup | None = None


def init_lti_storage(redis_url: str = "redis://localhost:6379/0", ttl: int | None = None) -> None:
    """Called during FastAPI startup."""
    global _launch_context_store
    _launch_context_store = RedisLaunchContextStore.from_url(redis_url, ttl=ttl)
    logger.info("LTI launch context storage initialized (Redis)")


def get_launch_context_store() -> RedisLaunchContextStore:
    """Get the launch context store singleton."""
    if _launch_context_store is None:
        raise RuntimeError("LTI storage not initialized. Set LTIB_REDIS_URL and restart.")
    return _launch_context_store


def init_credential_lookup(lookup: CredentialLookup | None = None) -> None:
    """Install *lookup*, or the one configured by ``LTIB_CONSUMERS``."""
    global _credential_lookup
    _credential_lookup = lookup if lookup is not None else load_credential_lookup()


def get_credential_lookup() -> CredentialLookup:
    if _credential_lookup is None:
        raise RuntimeError("LTI credential lookup not initialized.")
    return _credential_lookup


def _http_error(exc: LtiError) -> HTTPException:
    return HTTPException(status_code=_ERROR_STATUS.get(type(exc), 500), detail=str(exc))


async def _get_request_data(request: Request) -> dict[str, str]:
    """Query string and form parameters; the first value of a name wins."""
    request_data: dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        request_data.setdefault(key, value)
    if request.method == "POST":
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, str):
                request_data.setdefault(key, value)
    return request_data


def _require_session_id(request: Request) -> str:
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        raise SessionNotFoundError("No LTI session")
    return session_id


def _ensure_session_id(request: Request) -> str:
    """
    The session id, starting a new session if the browser has none.

    The session is written on every launch so the cookie is re-signed and
    lives as long as the launch context stored with it.
    """
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        logger.info("No session on LTI launch, started a new one")
    request.session[SESSION_ID_KEY] = session_id
    request.session[LAUNCHED_AT_KEY] = int(time.time())
    return session_id


@router.post("")
async def lti_launch(request: Request):
    """
    LTI launch.

    Stores the recognized launch parameters in the session and redirects
    the browser to the tool named by ``custom_tool``.  With
    ``custom_test=true`` a page showing the destination is returned instead.
    """
    request_data = await _get_request_data(request)

    # Send content item (deep linking) message back to LMS
    if RETURN_CONTENT_ITEM in request_data:
        return _send_content_item(request, request_data)

    session_id = _ensure_session_id(request)
    get_launch_context_store().store_launch_context(
        session_id, extract_launch_context(request_data)
    )
    logger.info("Received '%s' LTI message type", message_type(request_data))

    target = redirect_target_for_launch(request_data, get_settings().tools_url)
    redirect_url = target.to_url()

    if is_test_mode(request_data):
        return HTMLResponse(content=pages.render("tool_redirect.html", redirect_url=redirect_url))

    logger.debug("LTI redirect -> %s", redirect_url)
    return RedirectResponse(url=redirect_url, status_code=302)


@router.post("/ci")
async def lti_content_item(request: Request):
    """Return the selected content item to the LMS."""
    request_data = await _get_request_data(request)
    return _send_content_item(request, request_data)


@router.get("")
async def lti_context(request: Request):
    """
    Launch parameters of the current session.

    An empty object when nothing was stored; 404 without a session.
    """
    try:
        session_id = _require_session_id(request)
    except SessionNotFoundError as exc:
        raise _http_error(exc) from exc

    context = get_launch_context_store().read_launch_context(session_id)
    return JSONResponse(content=context)


def _send_content_item(request: Request, request_data: dict[str, str]) -> HTMLResponse:
    """
    Sign a ``ContentItemSelection`` for the session's consumer and render
    the form that posts it to the LMS.

    The selection comes either as a ready ``content_items`` document or as
    ``title``/``created``/``player``/``image`` fields describing one link.
    """
    try:
        session_id = _require_session_id(request)
        context = get_launch_context_store().read_launch_context(session_id)

        content_items = request_data.get("content_items") or build_content_items(
            title=request_data.get("title"),
            text=request_data.get("created"),
            tool=request_data.get("player"),
            thumbnail=request_data.get("image"),
        )
        return_url = context.get(CONTENT_ITEM_RETURN_URL)
        payload = build_content_item_return(
            context.get(OAUTH_CONSUMER_KEY),
            get_credential_lookup(),
            content_items,
            context.get(DATA),
            return_url,
        )
    except LtiError as exc:
        raise _http_error(exc) from exc

    test_mode = get_settings().debug or is_test_mode(request_data)
    logger.info("Returning content item to %s", return_url)
    return HTMLResponse(content=render_launch_form(payload, return_url, test_mode))
