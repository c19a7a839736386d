"""
Viewer Context Middleware — turns gateway identity headers into ``g.viewer``.

Authentication is done by the gateway in front of the portal, which forwards
the verified identity as:

    X-User-Id      user id (required for every non-public API call)
    X-User-Name    display name, used as comment author
    X-User-Role    role slug, see eoms_portal.core.viewer
    X-Campus-Id    the campus the user acts for
    X-Unit-Id      the unit the user belongs to

Public and health endpoints skip the identity requirement.

Chain order:
    timing.py  →  viewer_context.py  →  route handler
"""

import logging

from flask import g, request

from eoms_portal.core.viewer import ANONYMOUS, ROLE_EMPLOYEE, Viewer
from eoms_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths served without an identity
PUBLIC_PREFIXES = (
    "/api/v1/health",
    "/api/v1/public/",
)


def viewer_from_headers(headers) -> Viewer:
    user_id = (headers.get("X-User-Id") or "").strip()
    if not user_id:
        return ANONYMOUS
    return Viewer(
        user_id=user_id,
        name=(headers.get("X-User-Name") or "").strip(),
        role=(headers.get("X-User-Role") or ROLE_EMPLOYEE).strip().lower(),
        campus_id=(headers.get("X-Campus-Id") or "").strip() or None,
        unit_id=(headers.get("X-Unit-Id") or "").strip() or None,
    )


def init_viewer_context(app):
    """Register viewer context middleware as a before_request hook."""

    @app.before_request
    def _viewer_context():
        g.viewer = viewer_from_headers(request.headers)

        if not request.path.startswith("/api/v1/"):
            return None
        for prefix in PUBLIC_PREFIXES:
            if request.path.startswith(prefix):
                return None
        if request.method == "OPTIONS":
            return None

        if not g.viewer.is_authenticated:
            logger.warning("Rejected unauthenticated request %s %s", request.method, request.path)
            return api_error(E.UNAUTHENTICATED, "Missing X-User-Id identity header")
        return None
