"""Submission lifecycle service.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit(). The
carry-over operation is the one exception; see ``carry_over.py``.

Lifecycle:
    submitted → approved | rejected     (reviewer decision)
    rejected  → submitted               (resubmission = new record)
    approved  → submitted               (administrative re-open only)

Operations:
- create_submission   unit member files a document link
- decide              reviewer approves / rejects (reject needs a comment)
- reopen              admin re-opens an approved record
- add_comment         anyone in scope appends a review comment
- control numbers     EOMS-[CAMPUS]-[UNIT]-[YEAR]-[REPORT]-REV[n]
"""
import logging
from urllib.parse import urlparse

from eoms_portal.core.exceptions import ConflictError, ForbiddenError, ValidationError
from eoms_portal.core.viewer import Viewer
from eoms_portal.models import db
from eoms_portal.models.organization import Campus, Unit
from eoms_portal.models.submission import (
    REGISTRY_RISK_RATINGS,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_SUBMITTED,
    Submission,
)
from eoms_portal.services.report_catalog import DEFAULT_CATALOG, ReportCatalog
from eoms_portal.services.submission_query import list_submissions, resolve_membership
from eoms_portal.services.submission_snapshot import current_by_type, validate_cycle
from eoms_portal.utils.helpers import parse_year

logger = logging.getLogger(__name__)

CONTROL_NUMBER_PREFIX = "EOMS"
DECISIONS = {"approve": STATUS_APPROVED, "reject": STATUS_REJECTED}


# ── Control numbers ──────────────────────────────────────────────────────


def _initials(name: str) -> str:
    return "".join(word[0] for word in (name or "").split() if word).upper()


def generate_control_number(campus_name, unit_name, year, report_short_code, revision,
                            prefix=CONTROL_NUMBER_PREFIX):
    """Document control number, e.g. ``EOMS-MC-CE-2025-SWOT-REV0``."""
    return (
        f"{prefix}-{_initials(campus_name)}-{_initials(unit_name)}-"
        f"{year}-{report_short_code or 'DOC'}-REV{revision}"
    )


def control_number_for(unit_id, campus_id, year, report_type, revision, catalog=DEFAULT_CATALOG):
    campus = db.session.get(Campus, campus_id)
    unit = db.session.get(Unit, unit_id)
    return generate_control_number(
        campus.name if campus else campus_id,
        unit.name if unit else unit_id,
        year,
        catalog.get(report_type).short_code,
        revision,
    )


# ── Validation helpers ───────────────────────────────────────────────────


def _validate_link(link) -> str:
    link = (link or "").strip()
    if not link:
        raise ValidationError("link is required", details={"link": "required"})
    parsed = urlparse(link)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("link must be an http(s) URL", details={"link": link})
    return link


def _validate_risk_rating(report_type, risk_rating, catalog):
    if report_type == catalog.registry_code:
        if risk_rating not in REGISTRY_RISK_RATINGS:
            raise ValidationError(
                "risk_rating is required for the risk registry",
                details={"risk_rating": f"must be one of {sorted(REGISTRY_RISK_RATINGS)}"},
            )
        return risk_rating
    if risk_rating is not None:
        raise ValidationError(
            "risk_rating is only recorded on the risk registry",
            details={"risk_rating": "must be omitted"},
        )
    return None


def _require_member(viewer: Viewer, unit_id, campus_id):
    if not viewer.belongs_to(unit_id, campus_id):
        raise ForbiddenError("Only members of the submitting unit can file its documents", role=viewer.role)


# ── Create / resubmit ────────────────────────────────────────────────────


def create_submission(viewer: Viewer, data: dict, catalog: ReportCatalog = DEFAULT_CATALOG) -> Submission:
    """File a new submission (first submission or resubmission after rejection).

    Refused with ConflictError while the current record for the key is
    still pending review or approved.

    Returns:
        Submission instance (already flushed).
    """
    unit_id = data.get("unit_id") or viewer.unit_id
    campus_id = data.get("campus_id") or viewer.campus_id
    _require_member(viewer, unit_id, campus_id)
    campus, unit = resolve_membership(unit_id, campus_id)

    year = parse_year(data.get("year"))
    cycle_id = validate_cycle(data.get("cycle_id"))
    report_type = data.get("report_type")
    catalog.get(report_type)
    link = _validate_link(data.get("link"))
    risk_rating = _validate_risk_rating(report_type, data.get("risk_rating"), catalog)

    history = list_submissions(
        viewer, unit_id=unit_id, campus_id=campus_id, year=year,
        cycle_id=cycle_id, report_type=report_type,
    )
    current = current_by_type(history).get(report_type)
    if current is not None and current.status != STATUS_REJECTED:
        raise ConflictError("Submission", "status", current.status)

    sub = Submission(
        unit_id=unit_id,
        campus_id=campus_id,
        year=year,
        cycle_id=cycle_id,
        report_type=report_type,
        status=STATUS_SUBMITTED,
        link=link,
        risk_rating=risk_rating,
        control_number=generate_control_number(
            campus.name, unit.name, year, catalog.get(report_type).short_code, len(history),
        ),
        comments=[],
        submitted_by=viewer.user_id,
        submitted_by_name=viewer.name,
    )
    note = (data.get("comment") or "").strip()
    if note:
        sub.add_comment(note, author_id=viewer.user_id, author_name=viewer.name, author_role=viewer.role)
    db.session.add(sub)
    db.session.flush()

    logger.info(
        "Submission created id=%s unit=%s campus=%s year=%s cycle=%s type=%s revision=%d",
        sub.id, unit_id, campus_id, year, cycle_id, report_type, len(history),
    )
    return sub


# ── Review ───────────────────────────────────────────────────────────────


def decide(viewer: Viewer, sub: Submission, decision: str, comment: str | None = None) -> Submission:
    """Approve or reject a pending submission.

    ``sub`` must already have been fetched through the viewer's scope.
    """
    if not viewer.is_reviewer:
        raise ForbiddenError("Only supervisors can approve or reject submissions", role=viewer.role)
    if decision not in DECISIONS:
        raise ValidationError(
            f"Invalid decision {decision!r}",
            details={"decision": f"must be one of {sorted(DECISIONS)}"},
        )
    if sub.status != STATUS_SUBMITTED:
        raise ValidationError(
            f"Only submitted records can be reviewed (status is {sub.status})",
            details={"status": sub.status},
        )
    comment = (comment or "").strip()
    if decision == "reject" and not comment:
        raise ValidationError("A comment is required when rejecting", details={"comment": "required"})

    sub.status = DECISIONS[decision]
    if comment:
        sub.add_comment(comment, author_id=viewer.user_id, author_name=viewer.name, author_role=viewer.role)
    db.session.flush()

    logger.info("Submission %s %s by %s (%s)", sub.id, sub.status, viewer.user_id, viewer.role)
    return sub


def reopen(viewer: Viewer, sub: Submission, comment: str | None = None) -> Submission:
    """Administrative re-open: approved → submitted."""
    if not viewer.is_admin:
        raise ForbiddenError("Only administrators can re-open an approved submission", role=viewer.role)
    if sub.status != STATUS_APPROVED:
        raise ValidationError(
            f"Only approved records can be re-opened (status is {sub.status})",
            details={"status": sub.status},
        )
    sub.status = STATUS_SUBMITTED
    text = (comment or "").strip() or "Re-opened for review by an administrator."
    sub.add_comment(text, author_id=viewer.user_id, author_name=viewer.name, author_role=viewer.role)
    db.session.flush()
    logger.warning("Submission %s re-opened by admin %s", sub.id, viewer.user_id)
    return sub


def add_comment(viewer: Viewer, sub: Submission, text: str) -> dict:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required", details={"text": "required"})
    comment = sub.add_comment(text, author_id=viewer.user_id, author_name=viewer.name, author_role=viewer.role)
    db.session.flush()
    return comment
