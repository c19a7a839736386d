"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in eoms_portal/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from eoms_portal.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

PUBLIC_LIMIT = "30/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Public transparency board: 30/minute (unauthenticated)
        - Submission / risk / organisation routes: 60/minute
        - Compliance dashboards: 200/minute (read-only)
        - Health check: exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("public")
    if bp:
        limiter.limit(PUBLIC_LIMIT)(bp)

    for bp_name in ("submission", "risk", "organization"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("compliance")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — public: %s, write: %s, read: %s",
        PUBLIC_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
