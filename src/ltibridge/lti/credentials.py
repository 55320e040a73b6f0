"""
OAuth consumer credential lookup.

The credential store itself lives outside this service; the LTI flows only
need ``lookup(consumer_key)``.  ``StaticCredentialLookup`` serves key/secret
pairs loaded from configuration, which is how a deployment registers the
LMSes it trusts.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ltibridge.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumerCredential:
    """An OAuth consumer key and its shared secret."""

    consumer_key: str
    consumer_secret: str

    def __repr__(self) -> str:
        return f"ConsumerCredential(consumer_key={self.consumer_key!r}, consumer_secret='***')"


class CredentialLookup(Protocol):
    def lookup(self, consumer_key: str) -> ConsumerCredential | None:
        """Return the credential registered for *consumer_key*, or None."""


class StaticCredentialLookup:
    """Credential lookup over a fixed key -> secret mapping."""

    def __init__(self, secrets: Mapping[str, str]):
        self._secrets = dict(secrets)

    def __len__(self) -> int:
        return len(self._secrets)

    def lookup(self, consumer_key: str) -> ConsumerCredential | None:
        secret = self._secrets.get(consumer_key)
        if secret is None:
            return None
        return ConsumerCredential(consumer_key=consumer_key, consumer_secret=secret)


def _load_consumers(value: str) -> dict[str, str]:
    """Load the consumer map from a JSON string or file path."""
    stripped = value.strip()
    if stripped.startswith("{"):
        data = json.loads(stripped)
    else:
        with open(Path(value)) as f:
            data = json.load(f)

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError("Consumer config must be a JSON object of key -> secret strings")
    return data


def load_credential_lookup(value: str | None = None) -> StaticCredentialLookup:
    """
    Build the credential lookup from ``LTIB_CONSUMERS``.

    A missing file yields an empty lookup, so every content-item return is
    refused until consumers are configured.
    """
    if value is None:
        value = get_settings().consumers

    try:
        consumers = _load_consumers(value)
    except FileNotFoundError:
        logger.warning(
            "LTI consumer config %s not found; content-item returns will be rejected",
            value,
        )
        consumers = {}

    logger.info("Loaded %d LTI consumer credential(s)", len(consumers))
    return StaticCredentialLookup(consumers)
