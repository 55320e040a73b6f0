"""Errors raised by the LTI launch and content-item flows."""

from __future__ import annotations


class LtiError(Exception):
    """Base class for LTI failures that must reach the request boundary."""


class SessionNotFoundError(LtiError):
    """No browser session exists for a request that needs one."""


class ConsumerNotFoundError(LtiError):
    """No credential is registered for the OAuth consumer key."""

    def __init__(self, consumer_key: str | None):
        self.consumer_key = consumer_key
        super().__init__(f"No OAuth consumer registered for key {consumer_key!r}")


class ContentItemSigningError(LtiError):
    """The OAuth1 signature over a content-item return could not be computed."""
