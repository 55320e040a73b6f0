"""
Tool URI resolution.

Works out where the browser goes after a launch.  The destination comes from
the ``custom_tool`` parameter (``custom_dl_tool`` for content-item selection)
set up in the LMS, so it is attacker-controlled: only its path, query and
fragment survive, and anything unusable falls back to the default tool.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from urllib.parse import quote, quote_plus, unquote_plus, urlsplit

from .params import (
    CONSUMER_KEY,
    CONTENT_ITEM_RETURN_URL,
    DATA,
    LTI_CUSTOM_DL_TOOL,
    LTI_CUSTOM_PREFIX,
    LTI_CUSTOM_TOOL,
    OAUTH_CONSUMER_KEY,
    is_content_item_selection as is_content_item_launch,
)

logger = logging.getLogger(__name__)

DEFAULT_TOOL_PATH = "/ltitools"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# RFC 3986 pchar minus "%": decoded paths may hold a literal percent sign
_PATH_SAFE = "/:@!$&'()*+,;=~"


@dataclass(frozen=True)
class ToolRedirectTarget:
    """A same-origin redirect target: path, query pairs and fragment only."""

    path: str
    query: tuple[tuple[str, str | None], ...] = ()
    fragment: str = ""

    def with_query(self, *pairs: tuple[str, str | None]) -> ToolRedirectTarget:
        return replace(self, query=self.query + tuple(pairs))

    def to_url(self) -> str:
        url = quote(self.path, safe=_PATH_SAFE)
        if self.query:
            url += "?" + "&".join(_encode_pair(name, value) for name, value in self.query)
        if self.fragment:
            url += "#" + quote(self.fragment, safe=_PATH_SAFE + "?")
        return url

    def __str__(self) -> str:
        return self.to_url()


def _encode_pair(name: str, value: str | None) -> str:
    # A value of None is a bare flag such as "?embed"
    if value is None:
        return quote_plus(name)
    return f"{quote_plus(name)}={quote_plus(value)}"


def _split_query(query: str) -> tuple[tuple[str, str | None], ...]:
    """Split an already decoded query into pairs, keeping value-less keys."""
    pairs = []
    for part in query.split("&"):
        if not part:
            continue
        name, sep, value = part.partition("=")
        pairs.append((name, value if sep else None))
    return tuple(pairs)


def _decode(raw: str) -> str:
    """URL-decode like an HTML form (``+`` is a space), strictly."""
    if _BAD_ESCAPE.search(raw):
        raise ValueError("malformed percent escape")
    return unquote_plus(raw, encoding="utf-8", errors="strict")


def _parse_tool_uri(raw: str) -> ToolRedirectTarget:
    """
    Parse a raw tool URI into a path-only target.

    Raises ValueError if the value cannot be decoded or parsed, or has no
    path.  Scheme, user-info, host and port are discarded.
    """
    decoded = _decode(raw.strip())
    if _CONTROL_CHARS.search(decoded):
        raise ValueError("control characters in URI")

    parts = urlsplit(decoded)
    parts.port  # raises ValueError for a malformed port

    if parts.scheme and not decoded[len(parts.scheme) + 1:].startswith("/"):
        # Opaque URI such as "mailto:x" or "javascript:x"
        raise ValueError("opaque URI has no path")
    if not parts.path:
        raise ValueError("empty path")

    # A single leading "/" keeps the target on this host: relative paths
    # are anchored and "//host/..." can't be read as a network-path reference.
    path = "/" + parts.path.lstrip("/")
    query = _split_query(parts.query)
    return ToolRedirectTarget(path=path, query=query, fragment=parts.fragment)


def _custom_query(request_params: Mapping[str, str]) -> list[tuple[str, str]]:
    """Every ``custom_*`` parameter except the tool selectors, prefix removed."""
    pairs = []
    for key, value in request_params.items():
        if not key.startswith(LTI_CUSTOM_PREFIX) or key in (LTI_CUSTOM_TOOL, LTI_CUSTOM_DL_TOOL):
            continue
        name = key[len(LTI_CUSTOM_PREFIX):]
        if name:
            logger.debug("Found custom var: %s:%s", name, value)
            pairs.append((name, value))
    return pairs


def _content_item_query(request_params: Mapping[str, str]) -> list[tuple[str, str]]:
    """Parameters a content-item tool needs to answer the LMS later."""
    pairs = []
    if DATA in request_params:
        pairs.append((DATA, request_params[DATA]))
    for name, source in ((CONSUMER_KEY, OAUTH_CONSUMER_KEY), (CONTENT_ITEM_RETURN_URL, CONTENT_ITEM_RETURN_URL)):
        value = request_params.get(source)
        if value is not None:
            pairs.append((name, value))
    return pairs


def resolve_redirect_target(
    is_content_item_selection: bool,
    raw_tool: str | None,
    raw_dl_tool: str | None,
    request_params: Mapping[str, str],
    default_tool_path: str = DEFAULT_TOOL_PATH,
) -> ToolRedirectTarget:
    """
    Compute the tool redirect for a launch.

    Content-item selection launches use ``custom_dl_tool`` so a different
    tool can be returned to the LMS later.  Custom parameters are passed on
    with their prefix removed, followed by ``data``, ``consumer_key`` and
    ``content_item_return_url`` for content-item selection.

    An absent, empty-path or unparsable tool URI yields the default tool
    with no query parameters at all.
    """
    param_name = LTI_CUSTOM_DL_TOOL if is_content_item_selection else LTI_CUSTOM_TOOL
    raw = raw_dl_tool if is_content_item_selection else raw_tool

    if not raw or not raw.strip():
        logger.info("No '%s' parameter given, using default tool %s", param_name, default_tool_path)
        return ToolRedirectTarget(path=default_tool_path)

    try:
        target = _parse_tool_uri(raw)
    except ValueError as exc:
        logger.warning(
            "The '%s' parameter was invalid: %r (%s). Reverting to default: %s",
            param_name,
            raw,
            exc,
            default_tool_path,
        )
        return ToolRedirectTarget(path=default_tool_path)

    pairs = _custom_query(request_params)
    if is_content_item_selection:
        pairs.extend(_content_item_query(request_params))
    return target.with_query(*pairs)


def redirect_target_for_launch(
    request_params: Mapping[str, str],
    default_tool_path: str = DEFAULT_TOOL_PATH,
) -> ToolRedirectTarget:
    """Resolve the redirect target straight from a launch's parameters."""
    return resolve_redirect_target(
        is_content_item_launch(request_params),
        request_params.get(LTI_CUSTOM_TOOL),
        request_params.get(LTI_CUSTOM_DL_TOOL),
        request_params,
        default_tool_path,
    )
