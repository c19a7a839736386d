"""
EOMS Compliance Portal
Public blueprint — the unauthenticated transparency board.

Endpoints:
    GET /api/v1/public/transparency-board?year=2025

Institution-wide presence grid: a cell is ``submitted`` whenever a current
record exists, whatever its review status. Keys are the composite status
keys consumed verbatim by the board front end.
"""

import logging

from flask import Blueprint, jsonify, request

from eoms_portal.blueprints import engine_options, register_error_handlers
from eoms_portal.services.aggregation import compliance_matrix
from eoms_portal.services.submission_query import (
    institution_memberships,
    list_campuses,
    list_institution_submissions,
    list_submission_years,
)
from eoms_portal.utils.helpers import parse_year

logger = logging.getLogger(__name__)

public_bp = Blueprint("public", __name__, url_prefix="/api/v1/public")
register_error_handlers(public_bp)


@public_bp.route("/transparency-board", methods=["GET"])
def transparency_board():
    year = parse_year(request.args.get("year"))
    result = compliance_matrix(
        list_campuses(),
        institution_memberships(),
        list_institution_submissions(year=year),
        year,
        available_years=list_submission_years(),
        **engine_options(),
    )
    logger.debug("Transparency board served year=%s campuses=%d", year, len(result["campuses"]))
    return jsonify(result)
