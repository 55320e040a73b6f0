"""
LTI 1.x bridge: accepts LMS launches, hands tools their launch context and
returns content-item selections to the LMS.

The FastAPI application lives in ``ltibridge.app``.
"""

__version__ = "0.1.0"
