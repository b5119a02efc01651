"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in conecta/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from conecta.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Quotation endpoints: 60/minute  (multipart uploads, bulk decisions)
        - Project / request / catalog endpoints: 200/minute
          (the kanban board polls progress)

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("quotation")
    if bp:
        limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in ("project", "project_request", "catalog"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    app.logger.info(
        "Rate limiter configured — quotation: %s, other API: %s",
        WRITE_LIMIT, READ_LIMIT,
    )
