"""LTI 1.x launch handling, tool redirects and content-item returns."""

from .content_item import build_content_item_return, render_launch_form, sign_properties
from .credentials import ConsumerCredential, CredentialLookup, StaticCredentialLookup
from .errors import ConsumerNotFoundError, ContentItemSigningError, LtiError, SessionNotFoundError
from .params import LTI_PARAMETERS, extract_launch_context
from .storage import RedisLaunchContextStore
from .tool_uri import ToolRedirectTarget, redirect_target_for_launch, resolve_redirect_target

__all__ = [
    "LTI_PARAMETERS",
    "ConsumerCredential",
    "ConsumerNotFoundError",
    "ContentItemSigningError",
    "CredentialLookup",
    "LtiError",
    "RedisLaunchContextStore",
    "SessionNotFoundError",
    "StaticCredentialLookup",
    "ToolRedirectTarget",
    "build_content_item_return",
    "extract_launch_context",
    "redirect_target_for_launch",
    "render_launch_form",
    "resolve_redirect_target",
    "sign_properties",
]
