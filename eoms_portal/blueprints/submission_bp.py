"""
EOMS Compliance Portal
Submission blueprint — document filing, review and carry-over.

Endpoints:
    GET  /api/v1/submissions                     scoped list (history or current only)
    POST /api/v1/submissions                     file a document (unit member)
    GET  /api/v1/submissions/<id>                scoped fetch
    POST /api/v1/submissions/<id>/decision       approve / reject (supervisors)
    POST /api/v1/submissions/<id>/reopen         re-open an approved record (admin)
    POST /api/v1/submissions/<id>/comments       append a comment
    POST /api/v1/units/<unit_id>/carry-over      carry a first-cycle document into the final cycle
    GET  /api/v1/report-types                    the deployed report catalog
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from eoms_portal.blueprints import (
    current_catalog,
    current_viewer,
    paginate_items,
    register_error_handlers,
)
from eoms_portal.core.exceptions import ValidationError
from eoms_portal.models.submission import SUBMISSION_STATUSES
from eoms_portal.services import submission_service
from eoms_portal.services.carry_over import carry_over
from eoms_portal.services.submission_query import (
    get_submission,
    list_current_submissions,
    list_submissions,
)
from eoms_portal.utils.errors import E, api_error
from eoms_portal.utils.helpers import db_commit_or_error, parse_year

logger = logging.getLogger(__name__)

submission_bp = Blueprint("submission", __name__, url_prefix="/api/v1")
register_error_handlers(submission_bp)


def _list_filters():
    args = request.args
    status = args.get("status") or None
    if status is not None and status not in SUBMISSION_STATUSES:
        raise ValidationError(
            f"Invalid status {status!r}",
            details={"status": f"must be one of {sorted(SUBMISSION_STATUSES)}"},
        )
    year = args.get("year")
    return {
        "unit_id": args.get("unit_id") or None,
        "campus_id": args.get("campus_id") or None,
        "year": parse_year(year) if year else None,
        "cycle_id": args.get("cycle_id") or None,
        "report_type": args.get("report_type") or None,
        "status": status,
    }


# ═════════════════════════════════════════════════════════════════════════
# Submissions
# ═════════════════════════════════════════════════════════════════════════

@submission_bp.route("/submissions", methods=["GET"])
def list_submissions_endpoint():
    viewer = current_viewer()
    filters = _list_filters()
    if request.args.get("current", "").lower() in ("1", "true", "yes"):
        rows = list_current_submissions(viewer, **filters)
    else:
        rows = list_submissions(viewer, **filters)
    rows.sort(key=lambda s: (s.created_at is None, s.created_at), reverse=True)
    page, total = paginate_items(rows)
    return jsonify({"items": [s.to_dict() for s in page], "total": total})


@submission_bp.route("/submissions", methods=["POST"])
def create_submission_endpoint():
    data = request.get_json(silent=True) or {}
    sub = submission_service.create_submission(current_viewer(), data, current_catalog())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sub.to_dict()), 201


@submission_bp.route("/submissions/<submission_id>", methods=["GET"])
def get_submission_endpoint(submission_id):
    sub = get_submission(current_viewer(), submission_id)
    return jsonify(sub.to_dict())


@submission_bp.route("/submissions/<submission_id>/decision", methods=["POST"])
def decide_submission(submission_id):
    viewer = current_viewer()
    data = request.get_json(silent=True) or {}
    sub = get_submission(viewer, submission_id)
    submission_service.decide(viewer, sub, data.get("decision"), data.get("comment"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sub.to_dict())


@submission_bp.route("/submissions/<submission_id>/reopen", methods=["POST"])
def reopen_submission(submission_id):
    viewer = current_viewer()
    data = request.get_json(silent=True) or {}
    sub = get_submission(viewer, submission_id)
    submission_service.reopen(viewer, sub, data.get("comment"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sub.to_dict())


@submission_bp.route("/submissions/<submission_id>/comments", methods=["POST"])
def add_submission_comment(submission_id):
    viewer = current_viewer()
    data = request.get_json(silent=True) or {}
    sub = get_submission(viewer, submission_id)
    comment = submission_service.add_comment(viewer, sub, data.get("text"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comment), 201


# ═════════════════════════════════════════════════════════════════════════
# Carry-over
# ═════════════════════════════════════════════════════════════════════════

@submission_bp.route("/units/<unit_id>/carry-over", methods=["POST"])
def carry_over_endpoint(unit_id):
    viewer = current_viewer()
    data = request.get_json(silent=True) or {}
    report_type = data.get("report_type")
    if not report_type:
        return api_error(E.VALIDATION_REQUIRED, "report_type is required")
    campus_id = data.get("campus_id") or viewer.campus_id
    year = parse_year(data.get("year"))

    try:
        sub = carry_over(viewer, unit_id, campus_id, year, report_type, current_catalog())
    except SQLAlchemyError:
        return api_error(E.DATABASE, "Could not save the carried-over submission")
    return jsonify(sub.to_dict()), 201


@submission_bp.route("/report-types", methods=["GET"])
def list_report_types():
    return jsonify(current_catalog().to_dict())
