"""
Shared test fixtures for the LTI bridge.

Fixtures:
  - test_settings:       Settings(env="local", debug=False) with one test consumer
  - fake_redis_client:   fakeredis.FakeRedis instance
  - launch_store:        RedisLaunchContextStore backed by fake Redis
  - credential_lookup:   StaticCredentialLookup with the test consumer
  - app:                 FastAPI app with patched Redis + credentials + settings
  - client:              httpx.AsyncClient for the test app (keeps cookies)
  - launch:              Factory posting an LTI launch through the client
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from unittest.mock import patch

import fakeredis
import pytest
import pytest_asyncio

from ltibridge.lti.credentials import StaticCredentialLookup
from ltibridge.lti.storage import RedisLaunchContextStore
from ltibridge.settings import Settings, clear_settings_cache

CONSUMER_KEY = "moodle-test"
CONSUMER_SECRET = "test-consumer-secret"
RETURN_URL = "https://lms.example.com/mod/lti/contentitem_return.php"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    clear_settings_cache()
    return Settings(
        env="local",
        redis_url="redis://fake",
        session_secret="test-session-secret",
        session_cookie="JSESSIONID",
        tools_url="/ltitools",
        consumers=json.dumps({CONSUMER_KEY: CONSUMER_SECRET}),
        debug=False,
        log_level="DEBUG",
    )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def fake_redis_client() -> fakeredis.FakeRedis:
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture(scope="function")
def launch_store(fake_redis_client: fakeredis.FakeRedis) -> RedisLaunchContextStore:
    return RedisLaunchContextStore(fake_redis_client, ttl=3600)


@pytest.fixture(scope="function")
def credential_lookup() -> StaticCredentialLookup:
    return StaticCredentialLookup({CONSUMER_KEY: CONSUMER_SECRET})


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------


def _build_test_app(
    settings: Settings,
    store: RedisLaunchContextStore,
    lookup: StaticCredentialLookup,
):
    """Build the app with patched singletons (no real lifespan)."""
    import ltibridge.lti.routes as lti_routes_mod
    from ltibridge.app import get_app

    lti_routes_mod._launch_context_store = store
    lti_routes_mod._credential_lookup = lookup

    return get_app(settings)


@pytest_asyncio.fixture(scope="function")
async def app(
    test_settings: Settings,
    launch_store: RedisLaunchContextStore,
    credential_lookup: StaticCredentialLookup,
) -> AsyncGenerator:
    import ltibridge.lti.routes as lti_routes_mod

    with patch("ltibridge.settings.get_settings", return_value=test_settings), \
         patch("ltibridge.lti.routes.get_settings", return_value=test_settings):
        yield _build_test_app(test_settings, launch_store, credential_lookup)

    lti_routes_mod._launch_context_store = None
    lti_routes_mod._credential_lookup = None
    clear_settings_cache()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator:
    from httpx import ASGITransport, AsyncClient

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ---------------------------------------------------------------------------
# Convenience: post a launch
# ---------------------------------------------------------------------------


def basic_launch_params(**extras) -> dict:
    """Launch parameters as an LMS would post them, plus *extras*."""
    return {
        "lti_message_type": "basic-lti-launch-request",
        "lti_version": "LTI-1p0",
        "resource_link_id": "res-001",
        "user_id": "user-42",
        "roles": "Learner",
        "context_id": "course-101",
        "oauth_consumer_key": CONSUMER_KEY,
        **extras,
    }


def content_item_launch_params(**extras) -> dict:
    return basic_launch_params(
        lti_message_type="ContentItemSelectionRequest",
        content_item_return_url=RETURN_URL,
        data="opaque-lms-state",
        accept_presentation_document_targets="iframe,window",
        **extras,
    )


@pytest.fixture
def launch(client):
    """Factory fixture: await launch(**params) -> response of POST /lti."""

    async def _launch(params: dict | None = None, **extras):
        return await client.post("/lti", data=params if params is not None else basic_launch_params(**extras))

    return _launch
