"""
LTI 1.x launch parameter catalog.

The catalog is the closed set of launch parameters made available to tools
through ``GET /lti``.  See the IMS LTI implementation guide for the meaning
of each name.
"""

from __future__ import annotations

from collections.abc import Mapping

# ── Message types ────────────────────────────────────────────────────
LTI_MESSAGE_TYPE_BASIC = "basic-lti-launch-request"
LTI_MESSAGE_TYPE_CI = "ContentItemSelectionRequest"
LTI_MESSAGE_TYPE_CI_RETURN = "ContentItemSelection"

# ── Custom (tool-specific) parameters ────────────────────────────────
LTI_CUSTOM_PREFIX = "custom_"
LTI_CUSTOM_TOOL = "custom_tool"
LTI_CUSTOM_DL_TOOL = "custom_dl_tool"
LTI_CUSTOM_TEST = "custom_test"

# Name under which the OAuth consumer key is handed to content-item tools
CONSUMER_KEY = "consumer_key"

# ── Launch parameters ────────────────────────────────────────────────
LTI_MESSAGE_TYPE = "lti_message_type"
LTI_VERSION = "lti_version"
RESOURCE_LINK_ID = "resource_link_id"
RESOURCE_LINK_TITLE = "resource_link_title"
RESOURCE_LINK_DESCRIPTION = "resource_link_description"
USER_ID = "user_id"
USER_IMAGE = "user_image"
ROLES = "roles"
GIVEN_NAME = "lis_person_name_given"
FAMILY_NAME = "lis_person_name_family"
FULL_NAME = "lis_person_name_full"
EMAIL = "lis_person_contact_email_primary"
CONTEXT_ID = "context_id"
CONTEXT_TYPE = "context_type"
CONTEXT_TITLE = "context_title"
CONTEXT_LABEL = "context_label"
LOCALE = "launch_presentation_locale"
TARGET = "launch_presentation_document_target"
WIDTH = "launch_presentation_width"
HEIGHT = "launch_presentation_height"
RETURN_URL = "launch_presentation_return_url"
CONSUMER_GUID = "tool_consumer_instance_guid"
CONSUMER_NAME = "tool_consumer_instance_name"
CONSUMER_DESCRIPTION = "tool_consumer_instance_description"
CONSUMER_URL = "tool_consumer_instance_url"
CONSUMER_CONTACT = "tool_consumer_instance_contact_email"
OAUTH_CONSUMER_KEY = "oauth_consumer_key"
COURSE_OFFERING = "lis_course_offering_sourcedid"
COURSE_SECTION = "lis_course_section_sourcedid"
DATA = "data"
CONTENT_ITEM_RETURN_URL = "content_item_return_url"
ACCEPT_PRESENTATION_DOCUMENT_TARGETS = "accept_presentation_document_targets"

LTI_PARAMETERS: tuple[str, ...] = tuple(
    sorted(
        {
            LTI_MESSAGE_TYPE,
            LTI_VERSION,
            RESOURCE_LINK_ID,
            RESOURCE_LINK_TITLE,
            RESOURCE_LINK_DESCRIPTION,
            USER_ID,
            USER_IMAGE,
            ROLES,
            GIVEN_NAME,
            FAMILY_NAME,
            FULL_NAME,
            EMAIL,
            CONTEXT_ID,
            CONTEXT_TYPE,
            CONTEXT_TITLE,
            CONTEXT_LABEL,
            LOCALE,
            TARGET,
            WIDTH,
            HEIGHT,
            RETURN_URL,
            CONSUMER_GUID,
            CONSUMER_NAME,
            CONSUMER_DESCRIPTION,
            CONSUMER_URL,
            CONSUMER_CONTACT,
            OAUTH_CONSUMER_KEY,
            COURSE_OFFERING,
            COURSE_SECTION,
            DATA,
            CONTENT_ITEM_RETURN_URL,
            ACCEPT_PRESENTATION_DOCUMENT_TARGETS,
        }
    )
)
"""Every recognized launch parameter, in alphabetical order."""

LTI_PARAMETER_SET: frozenset[str] = frozenset(LTI_PARAMETERS)


def _trim_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def extract_launch_context(request_params: Mapping[str, str]) -> dict[str, str]:
    """
    Build the launch context for a request.

    Only catalog parameters are kept.  Values are trimmed and blank values
    are dropped, so every entry in the result is a non-empty string.  Keys
    come out in catalog order.
    """
    context: dict[str, str] = {}
    for key in LTI_PARAMETERS:
        value = _trim_to_none(request_params.get(key))
        if value is not None:
            context[key] = value
    return context


def message_type(request_params: Mapping[str, str]) -> str:
    """The request's ``lti_message_type``, trimmed, or ``""``."""
    return _trim_to_none(request_params.get(LTI_MESSAGE_TYPE)) or ""


def is_content_item_selection(request_params: Mapping[str, str]) -> bool:
    return message_type(request_params) == LTI_MESSAGE_TYPE_CI


def is_test_mode(request_params: Mapping[str, str]) -> bool:
    """True when the ``custom_test`` debug flag is ``true`` (any case)."""
    return (_trim_to_none(request_params.get(LTI_CUSTOM_TEST)) or "").lower() == "true"
