"""
EOMS Compliance Portal
Compliance blueprint — dashboards computed by the compliance engine.

Every endpoint reads a fresh, role-scoped snapshot through the query
adapter and hands it to the aggregation layer; nothing is cached.

Endpoints:
    GET /api/v1/units/<unit_id>/compliance         per-cycle + annual completion
    GET /api/v1/compliance/leaderboard             ranked units, star rating
    GET /api/v1/compliance/incomplete              units still missing documents
    GET /api/v1/compliance/matrix                  presence grid (internal report)
    GET /api/v1/compliance/on-track                units complete in both cycles
    GET /api/v1/compliance/without-submissions     units that filed nothing
    GET /api/v1/compliance/cycle-breakdown         current submissions per type per cycle
    GET /api/v1/compliance/campus-summary          per-campus roll-up

Common query params: ``year`` (default: current year), ``campus_id``.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from eoms_portal.blueprints import current_viewer, engine_options, register_error_handlers
from eoms_portal.core.exceptions import NotFoundError, ValidationError
from eoms_portal.services import aggregation
from eoms_portal.services.completion import evaluate_unit_year
from eoms_portal.services.submission_query import (
    campuses_in_scope,
    list_submission_years,
    list_submissions,
    memberships_in_scope,
)
from eoms_portal.utils.helpers import parse_year

logger = logging.getLogger(__name__)

compliance_bp = Blueprint("compliance", __name__, url_prefix="/api/v1")
register_error_handlers(compliance_bp)


def _scope_args():
    return parse_year(request.args.get("year")), request.args.get("campus_id") or None


def _snapshot(viewer, year, campus_id=None):
    return list_submissions(viewer, year=year, campus_id=campus_id)


# ═════════════════════════════════════════════════════════════════════════
# Unit compliance
# ═════════════════════════════════════════════════════════════════════════

@compliance_bp.route("/units/<unit_id>/compliance", methods=["GET"])
def unit_compliance(unit_id):
    viewer = current_viewer()
    year = parse_year(request.args.get("year"))
    campus_id = request.args.get("campus_id") or None
    if campus_id is None:
        if viewer.unit_id == unit_id and viewer.campus_id:
            campus_id = viewer.campus_id
        else:
            raise ValidationError("campus_id is required", details={"campus_id": "required"})

    pairs = memberships_in_scope(viewer, campus_id=campus_id)
    match = [(c, u) for c, u in pairs if u.id == unit_id]
    if not match:
        raise NotFoundError(resource="Unit", resource_id=unit_id)
    campus, unit = match[0]

    options = engine_options()
    snapshot = list_submissions(viewer, unit_id=unit_id, campus_id=campus_id, year=year)
    annual = evaluate_unit_year(unit_id, campus_id, year, snapshot, **options)

    catalog = options["catalog"]
    cycles = {}
    for cycle_id, result in annual.cycles.items():
        cycles[cycle_id] = {
            **result.to_dict(),
            "action_plan_exempt": catalog.action_plan_code not in result.required_types,
            "missing_labels": [catalog.display_name(c) for c in result.missing_types],
        }

    return jsonify({
        "unit": unit.to_dict(),
        "campus": campus.to_dict(),
        "year": year,
        "cycles": cycles,
        "annual": {
            "approved_count": annual.approved_count,
            "required_count": annual.required_count,
            "missing_count": annual.missing_count,
            "percentage": annual.percentage,
            "is_complete": annual.is_complete,
        },
    })


# ═════════════════════════════════════════════════════════════════════════
# Dashboards
# ═════════════════════════════════════════════════════════════════════════

@compliance_bp.route("/compliance/leaderboard", methods=["GET"])
def leaderboard():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    entries = aggregation.leaderboard(
        memberships_in_scope(viewer, campus_id=campus_id),
        _snapshot(viewer, year, campus_id),
        year,
        campus_id=campus_id,
        min_percent=current_app.config.get("LEADERBOARD_MIN_PERCENT", aggregation.DEFAULT_MIN_PERCENT),
        star_step=current_app.config.get("STAR_PERCENT_STEP", aggregation.DEFAULT_STAR_STEP),
        **engine_options(),
    )
    return jsonify({"year": year, "campus_id": campus_id, "items": entries, "total": len(entries)})


@compliance_bp.route("/compliance/incomplete", methods=["GET"])
def incomplete():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    rows = aggregation.incomplete_units(
        memberships_in_scope(viewer, campus_id=campus_id),
        _snapshot(viewer, year, campus_id),
        year,
        campus_id=campus_id,
        **engine_options(),
    )
    return jsonify({"year": year, "items": rows, "total": len(rows)})


@compliance_bp.route("/compliance/matrix", methods=["GET"])
def matrix():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    campuses = [c for c in campuses_in_scope(viewer) if campus_id is None or c.id == campus_id]
    result = aggregation.compliance_matrix(
        campuses,
        memberships_in_scope(viewer, campus_id=campus_id),
        _snapshot(viewer, year, campus_id),
        year,
        available_years=list_submission_years(),
        **engine_options(),
    )
    return jsonify(result)


@compliance_bp.route("/compliance/on-track", methods=["GET"])
def on_track():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    groups = aggregation.on_track_units(
        memberships_in_scope(viewer, campus_id=campus_id),
        _snapshot(viewer, year, campus_id),
        year,
        campus_id=campus_id,
        **engine_options(),
    )
    return jsonify({"year": year, "campuses": groups})


@compliance_bp.route("/compliance/without-submissions", methods=["GET"])
def without_submissions():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    rows = aggregation.units_without_submissions(
        memberships_in_scope(viewer, campus_id=campus_id),
        _snapshot(viewer, year, campus_id),
        year,
        campus_id=campus_id,
    )
    return jsonify({"year": year, "items": rows, "total": len(rows)})


@compliance_bp.route("/compliance/cycle-breakdown", methods=["GET"])
def cycle_breakdown():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    rows = aggregation.cycle_breakdown(
        _snapshot(viewer, year, campus_id), year, engine_options()["catalog"],
    )
    return jsonify({"year": year, "items": rows})


@compliance_bp.route("/compliance/campus-summary", methods=["GET"])
def campus_summary():
    viewer = current_viewer()
    year, campus_id = _scope_args()
    rows = aggregation.campus_summary(
        memberships_in_scope(viewer, campus_id=campus_id),
        _snapshot(viewer, year, campus_id),
        year,
        **engine_options(),
    )
    return jsonify({"year": year, "items": rows})
