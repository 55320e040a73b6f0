"""
Content-item (deep linking) return for LTI 1.x.

After a user picks a resource in a content-item selection tool, the choice
goes back to the LMS as an OAuth1-signed form POST to the
``content_item_return_url`` the LMS sent with the selection request.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from types import MappingProxyType
from urllib.parse import parse_qsl

from oauthlib.oauth1 import SIGNATURE_HMAC, SIGNATURE_TYPE_BODY, Client

from . import pages
from .credentials import CredentialLookup
from .errors import ConsumerNotFoundError, ContentItemSigningError
from .params import DATA, LTI_MESSAGE_TYPE, LTI_MESSAGE_TYPE_CI_RETURN, LTI_VERSION

logger = logging.getLogger(__name__)

CONTENT_ITEMS = "content_items"
SUBMIT = "ext_submit"
OAUTH_CALLBACK = "oauth_callback"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

DEFAULT_LTI_VERSION = "LTI-1p0"
DEFAULT_SUBMIT_LABEL = "Return content to Consumer"
DEFAULT_OAUTH_CALLBACK = "about:blank"

CONTENT_ITEM_CONTEXT = "http://purl.imsglobal.org/ctx/lti/v1/ContentItem"
LTI_LINK_MEDIA_TYPE = "application/vnd.ims.lti.v1.ltilink"

# Tool-side names some consumers use for the content-item fields
_RENAMED_PROPERTIES = {
    "custom_content_items": CONTENT_ITEMS,
    "custom_data": DATA,
}


def build_content_items(
    title: str | None,
    text: str | None,
    tool: str | None,
    thumbnail: str | None = None,
) -> str:
    """
    Serialize a single LTI link as a content-item graph.

    ``tool`` becomes the ``custom.tool`` parameter, so the LMS launches the
    chosen tool when the link is followed.
    """
    item: dict = {
        "@type": "LtiLinkItem",
        "mediaType": LTI_LINK_MEDIA_TYPE,
        "title": title or "",
        "custom": {"tool": tool or ""},
    }
    if text:
        item["text"] = text
    if thumbnail:
        item["thumbnail"] = {"@id": thumbnail}
    return json.dumps({"@context": CONTENT_ITEM_CONTEXT, "@graph": [item]})


def cleanup_properties(properties: Mapping[str, str | None]) -> dict[str, str]:
    """Trim keys, drop empty values and map tool-side names to LTI names."""
    cleaned: dict[str, str] = {}
    for raw_key, value in properties.items():
        key = raw_key.strip()
        if value is None or value == "":
            continue
        cleaned[_RENAMED_PROPERTIES.get(key, key)] = value
    return cleaned


def sign_properties(
    properties: Mapping[str, str | None],
    url: str | None,
    method: str,
    consumer_key: str,
    consumer_secret: str,
    *,
    nonce: str | None = None,
    timestamp: str | None = None,
) -> Mapping[str, str]:
    """
    OAuth1-sign form properties for a POST to *url*.

    Defaults for ``lti_version``, ``ext_submit`` and ``oauth_callback`` are
    filled in first.  The result holds the properties plus every OAuth
    parameter (HMAC-SHA1 body signature) and is read-only.  *nonce* and
    *timestamp* are generated unless given.

    Raises ContentItemSigningError if no signature can be computed.
    """
    props = cleanup_properties(properties)
    props.setdefault(LTI_VERSION, DEFAULT_LTI_VERSION)
    props.setdefault(SUBMIT, DEFAULT_SUBMIT_LABEL)
    props.setdefault(OAUTH_CALLBACK, DEFAULT_OAUTH_CALLBACK)

    if not url:
        logger.error("No signature generated: missing target URL")
        raise ContentItemSigningError("Cannot sign properties without a target URL")
    if not consumer_key or not consumer_secret:
        logger.error("No signature generated: missing consumer key or secret")
        raise ContentItemSigningError("Cannot sign properties without consumer credentials")

    client = Client(
        consumer_key,
        client_secret=consumer_secret,
        signature_method=SIGNATURE_HMAC,
        signature_type=SIGNATURE_TYPE_BODY,
        nonce=nonce,
        timestamp=timestamp,
    )
    try:
        __, __, body = client.sign(
            url,
            http_method=method.upper(),
            body=props,
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )
    except (ValueError, UnicodeError) as exc:
        logger.error("OAuth signing for %s failed: %s", url, exc)
        raise ContentItemSigningError(f"Could not sign request to {url!r}: {exc}") from exc

    return MappingProxyType(dict(parse_qsl(body, keep_blank_values=True)))


def build_content_item_return(
    consumer_key: str | None,
    credential_lookup: CredentialLookup,
    content_items: str,
    data: str | None,
    return_url: str | None,
    *,
    nonce: str | None = None,
    timestamp: str | None = None,
) -> Mapping[str, str]:
    """
    Build the signed ``ContentItemSelection`` message for the LMS.

    Raises ConsumerNotFoundError when no credential is registered for
    *consumer_key*, and ContentItemSigningError when signing fails.
    """
    credential = credential_lookup.lookup(consumer_key) if consumer_key else None
    if credential is None:
        logger.error("Content-item return refused: unknown consumer key %r", consumer_key)
        raise ConsumerNotFoundError(consumer_key)

    props = {
        LTI_MESSAGE_TYPE: LTI_MESSAGE_TYPE_CI_RETURN,
        CONTENT_ITEMS: content_items,
        DATA: data,
    }
    return sign_properties(
        props,
        return_url,
        "POST",
        credential.consumer_key,
        credential.consumer_secret,
        nonce=nonce,
        timestamp=timestamp,
    )


def render_launch_form(payload: Mapping[str, str], return_url: str, test_mode: bool = False) -> str:
    """
    Render the page that POSTs *payload* to *return_url*.

    The form submits itself unless *test_mode* is set, in which case the
    endpoint and parameters are shown and the user submits by hand.
    """
    fields = [(key, value) for key, value in payload.items() if key != SUBMIT]
    return pages.render(
        "launch_form.html",
        url=return_url,
        fields=fields,
        submit_name=SUBMIT,
        submit_label=payload.get(SUBMIT, DEFAULT_SUBMIT_LABEL),
        test_mode=test_mode,
        parameters=sorted(payload.items()),
    )
