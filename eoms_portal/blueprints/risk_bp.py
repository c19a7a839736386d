"""
EOMS Compliance Portal
Risk blueprint — the unit risk & opportunity register.

Endpoints:
    GET  /api/v1/risks                      scoped list (filters unit_id, campus_id, year, rating, status)
    POST /api/v1/risks                      log a risk / opportunity
    GET  /api/v1/risks/<id>                 scoped fetch
    PUT  /api/v1/risks/<id>                 update (re-rated when likelihood/consequence change)
    GET  /api/v1/risks/heatmap              5×5 likelihood × consequence matrix
    GET  /api/v1/risks/registry-rating      registry flag implied by a unit's risks
    POST /api/v1/risks/rate                 rate a likelihood/consequence pair without saving
"""

import logging

from flask import Blueprint, jsonify, request

from eoms_portal.blueprints import current_thresholds, current_viewer, paginate_items, register_error_handlers
from eoms_portal.core.exceptions import ValidationError
from eoms_portal.services import risk_service
from eoms_portal.services.risk_rating import rate
from eoms_portal.services.submission_query import get_risk, list_risks
from eoms_portal.utils.helpers import db_commit_or_error, parse_year

logger = logging.getLogger(__name__)

risk_bp = Blueprint("risk", __name__, url_prefix="/api/v1/risks")
register_error_handlers(risk_bp)


def _risk_filters():
    args = request.args
    year = args.get("year")
    return {
        "unit_id": args.get("unit_id") or None,
        "campus_id": args.get("campus_id") or None,
        "year": parse_year(year) if year else None,
        "rating": args.get("rating") or None,
        "status": args.get("status") or None,
    }


# ═════════════════════════════════════════════════════════════════════════
# Register CRUD
# ═════════════════════════════════════════════════════════════════════════

@risk_bp.route("", methods=["GET"])
def list_risks_endpoint():
    risks = list_risks(current_viewer(), **_risk_filters())
    risks.sort(key=lambda r: (-r.magnitude, r.id))
    page, total = paginate_items(risks)
    return jsonify({"items": [r.to_dict() for r in page], "total": total})


@risk_bp.route("", methods=["POST"])
def create_risk_endpoint():
    data = request.get_json(silent=True) or {}
    risk = risk_service.create_risk(current_viewer(), data, current_thresholds())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(risk.to_dict()), 201


@risk_bp.route("/<int:risk_id>", methods=["GET"])
def get_risk_endpoint(risk_id):
    return jsonify(get_risk(current_viewer(), risk_id).to_dict())


@risk_bp.route("/<int:risk_id>", methods=["PUT"])
def update_risk_endpoint(risk_id):
    viewer = current_viewer()
    data = request.get_json(silent=True) or {}
    risk = get_risk(viewer, risk_id)
    risk_service.update_risk(viewer, risk, data, current_thresholds())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(risk.to_dict())


# ═════════════════════════════════════════════════════════════════════════
# Analysis
# ═════════════════════════════════════════════════════════════════════════

@risk_bp.route("/heatmap", methods=["GET"])
def heatmap():
    risks = list_risks(current_viewer(), **_risk_filters())
    return jsonify(risk_service.compute_heatmap(risks))


@risk_bp.route("/registry-rating", methods=["GET"])
def registry_rating():
    viewer = current_viewer()
    filters = _risk_filters()
    unit_id = filters["unit_id"] or viewer.unit_id
    if not unit_id:
        raise ValidationError("unit_id is required", details={"unit_id": "required"})
    year = filters["year"] or parse_year(None)
    risks = list_risks(viewer, unit_id=unit_id, campus_id=filters["campus_id"], year=year)
    return jsonify({
        "unit_id": unit_id,
        "year": year,
        "risk_count": len(risks),
        "risk_rating": risk_service.suggested_registry_rating(risks),
    })


@risk_bp.route("/rate", methods=["POST"])
def rate_endpoint():
    data = request.get_json(silent=True) or {}
    result = rate(data.get("likelihood"), data.get("consequence"), current_thresholds())
    return jsonify(result.to_dict())
