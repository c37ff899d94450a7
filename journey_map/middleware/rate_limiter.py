"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter instance is created in journey_map/__init__.py without default
limits; this module attaches one limit per blueprint, read from config:

    import_bp     RATELIMIT_IMPORT      whole-file parses
    workspace_bp  RATELIMIT_WORKSPACE   drag / filter / edge edits are chatty
    journey_bp    RATELIMIT_JOURNEYS
    health_bp     exempt

Disabled under TESTING or when RATELIMIT_ENABLED is false.
"""

import logging

logger = logging.getLogger(__name__)

BLUEPRINT_LIMITS = (
    ("import_bp", "RATELIMIT_IMPORT"),
    ("workspace_bp", "RATELIMIT_WORKSPACE"),
    ("journey_bp", "RATELIMIT_JOURNEYS"),
)
EXEMPT_BLUEPRINTS = ("health_bp",)


def init_rate_limits(app, limiter):
    """Apply the configured limits; call after all blueprints are registered."""
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        logger.info("Rate limiter disabled")
        return

    applied = {}
    for bp_name, config_key in BLUEPRINT_LIMITS:
        bp = app.blueprints.get(bp_name)
        limit = app.config.get(config_key)
        if bp is None or not limit:
            continue
        limiter.limit(limit)(bp)
        applied[bp_name] = limit

    for bp_name in EXEMPT_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp is not None:
            limiter.exempt(bp)

    logger.info("Rate limits applied: %s", applied)
