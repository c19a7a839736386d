"""
EOMS Compliance Portal
Blueprint registry and shared request helpers.
"""

import logging

from flask import current_app, g, request

from eoms_portal.core.exceptions import (
    CarryOverRefusedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from eoms_portal.core.viewer import ANONYMOUS
from eoms_portal.services.report_catalog import get_catalog
from eoms_portal.services.risk_rating import RatingThresholds
from eoms_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate_items(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already materialised list.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_page, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def current_viewer():
    return getattr(g, "viewer", ANONYMOUS)


def current_catalog():
    return get_catalog(current_app.config.get("REPORT_CATALOG_VERSION"))


def current_thresholds():
    return RatingThresholds.from_config(current_app.config["RISK_RATING_THRESHOLDS"])


def engine_options():
    """Keyword arguments shared by every completion computation."""
    return {
        "catalog": current_catalog(),
        "require_approved_registry": current_app.config.get("EXEMPTION_REQUIRES_APPROVED_REGISTRY", False),
    }


def register_error_handlers(bp):
    """Translate the portal exception hierarchy into standard API errors for ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        logger.warning(
            "Forbidden %s %s role=%s: %s", request.method, request.path, error.role, error,
        )
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(
            E.CONFLICT_DUPLICATE, str(error),
            details={"field": error.field, "value": error.value},
        )

    @bp.errorhandler(CarryOverRefusedError)
    def _handle_carry_over_refused(error: CarryOverRefusedError):
        return api_error(
            E.CARRY_OVER_REFUSED, str(error),
            details={"reason": error.reason, "report_type": error.report_type},
        )

    return bp
