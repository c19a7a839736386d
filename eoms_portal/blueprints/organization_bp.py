"""
EOMS Compliance Portal
Organisation blueprint — campus and unit reference data.

Endpoints:
    GET  /api/v1/campuses          campuses visible to the viewer (all, for admins)
    POST /api/v1/campuses          create a campus (admin)
    GET  /api/v1/units             units, optionally of one campus
    POST /api/v1/units             create a unit and attach it to campuses (admin)
"""

import logging

from flask import Blueprint, jsonify, request

from eoms_portal.blueprints import current_viewer, register_error_handlers
from eoms_portal.core.exceptions import ConflictError, ForbiddenError, ValidationError
from eoms_portal.models import db
from eoms_portal.models.organization import Campus, Unit
from eoms_portal.services.submission_query import campuses_in_scope, list_units
from eoms_portal.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

organization_bp = Blueprint("organization", __name__, url_prefix="/api/v1")
register_error_handlers(organization_bp)


def _require_admin(viewer):
    if not viewer.is_admin:
        raise ForbiddenError("Only administrators can manage organisation data", role=viewer.role)


def _required(data, field):
    value = (data.get(field) or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value


@organization_bp.route("/campuses", methods=["GET"])
def list_campuses_endpoint():
    campuses = campuses_in_scope(current_viewer())
    return jsonify({"items": [c.to_dict() for c in campuses], "total": len(campuses)})


@organization_bp.route("/campuses", methods=["POST"])
def create_campus():
    _require_admin(current_viewer())
    data = request.get_json(silent=True) or {}
    campus_id = _required(data, "id")
    if db.session.get(Campus, campus_id):
        raise ConflictError("Campus", "id", campus_id)

    campus = Campus(id=campus_id, name=_required(data, "name"), location=data.get("location", ""))
    db.session.add(campus)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Campus created id=%s", campus.id)
    return jsonify(campus.to_dict()), 201


@organization_bp.route("/units", methods=["GET"])
def list_units_endpoint():
    units = list_units(campus_id=request.args.get("campus_id") or None)
    return jsonify({"items": [u.to_dict() for u in units], "total": len(units)})


@organization_bp.route("/units", methods=["POST"])
def create_unit():
    _require_admin(current_viewer())
    data = request.get_json(silent=True) or {}
    unit_id = _required(data, "id")
    if db.session.get(Unit, unit_id):
        raise ConflictError("Unit", "id", unit_id)

    campus_ids = data.get("campus_ids") or []
    campuses = []
    for campus_id in campus_ids:
        campus = db.session.get(Campus, campus_id)
        if campus is None:
            raise ValidationError(f"Unknown campus {campus_id!r}", details={"campus_ids": campus_id})
        campuses.append(campus)

    unit = Unit(
        id=unit_id,
        name=_required(data, "name"),
        vice_president_id=data.get("vice_president_id"),
        campuses=campuses,
    )
    db.session.add(unit)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Unit created id=%s campuses=%s", unit.id, unit.campus_ids)
    return jsonify(unit.to_dict()), 201
