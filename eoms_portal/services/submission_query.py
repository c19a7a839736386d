"""
Query Adapter — role-scoped reads against the submission store.

Every read the compliance engine consumes goes through this module, so the
scope rules live in exactly one place:

    admin               → everything
    campus supervisor   → rows whose campus_id is the viewer's campus
    vice president      → rows of units whose vice_president_id is the viewer
    anyone else         → rows of the viewer's own unit

Only equality filters are applied. No caller may rely on ordering from the
store; the engine reduces "current" records itself
(``submission_snapshot.current_submissions``).

Usage:
    subs = list_submissions(viewer, year=2025)
    pairs = memberships_in_scope(viewer, campus_id="main")
    sub = get_submission(viewer, submission_id)     # NotFoundError when out of scope
    board = list_institution_submissions(year=2025)    # public board only, unscoped
"""

import logging

from sqlalchemy import false, select

from eoms_portal.core.exceptions import NotFoundError, ValidationError
from eoms_portal.core.viewer import Viewer
from eoms_portal.models import db
from eoms_portal.models.organization import Campus, Unit
from eoms_portal.models.risk import Risk
from eoms_portal.models.submission import Submission
from eoms_portal.services.submission_snapshot import current_submissions, validate_cycle

logger = logging.getLogger(__name__)


def _scope_clause(model, viewer: Viewer):
    """WHERE clause limiting ``model`` rows (Submission / Risk) to the viewer's scope."""
    if viewer.is_admin:
        return None
    if viewer.is_campus_supervisor:
        if not viewer.campus_id:
            return false()
        return model.campus_id == viewer.campus_id
    if viewer.is_unit_supervisor:
        supervised = select(Unit.id).where(Unit.vice_president_id == viewer.user_id)
        return model.unit_id.in_(supervised)
    if not viewer.unit_id:
        return false()
    return model.unit_id == viewer.unit_id


def _scoped_select(model, viewer, filters):
    stmt = select(model)
    clause = _scope_clause(model, viewer)
    if clause is not None:
        stmt = stmt.where(clause)
    for field, value in filters.items():
        if value is not None:
            stmt = stmt.where(getattr(model, field) == value)
    return stmt


def list_submissions(
    viewer: Viewer,
    *,
    unit_id: str | None = None,
    campus_id: str | None = None,
    year: int | None = None,
    cycle_id: str | None = None,
    report_type: str | None = None,
    status: str | None = None,
) -> list:
    """All submission records (history included) visible to ``viewer``."""
    if cycle_id is not None:
        validate_cycle(cycle_id)
    stmt = _scoped_select(Submission, viewer, {
        "unit_id": unit_id,
        "campus_id": campus_id,
        "year": year,
        "cycle_id": cycle_id,
        "report_type": report_type,
        "status": status,
    })
    rows = list(db.session.execute(stmt).scalars())
    logger.debug(
        "list_submissions role=%s unit=%s campus=%s year=%s cycle=%s -> %d rows",
        viewer.role, unit_id, campus_id, year, cycle_id, len(rows),
    )
    return rows


def list_current_submissions(viewer: Viewer, **filters) -> list:
    """Like ``list_submissions`` but reduced to the current record per key.

    ``status`` is applied after the reduction so a superseded approved
    record never masquerades as current.
    """
    status = filters.pop("status", None)
    current = current_submissions(list_submissions(viewer, **filters)).values()
    if status is not None:
        current = [s for s in current if s.status == status]
    return list(current)


def list_institution_submissions(*, year: int | None = None) -> list:
    """Unscoped read for the public transparency board only."""
    stmt = select(Submission)
    if year is not None:
        stmt = stmt.where(Submission.year == year)
    return list(db.session.execute(stmt).scalars())


def list_submission_years() -> list[int]:
    """Distinct years with at least one submission, newest first."""
    stmt = select(Submission.year).distinct()
    return sorted(db.session.execute(stmt).scalars(), reverse=True)


def get_submission(viewer: Viewer, submission_id: str) -> Submission:
    stmt = _scoped_select(Submission, viewer, {"id": submission_id})
    sub = db.session.execute(stmt).scalar_one_or_none()
    if sub is None:
        raise NotFoundError(resource="Submission", resource_id=submission_id)
    return sub


def list_risks(
    viewer: Viewer,
    *,
    unit_id: str | None = None,
    campus_id: str | None = None,
    year: int | None = None,
    rating: str | None = None,
    status: str | None = None,
) -> list:
    stmt = _scoped_select(Risk, viewer, {
        "unit_id": unit_id,
        "campus_id": campus_id,
        "year": year,
        "rating": rating,
        "status": status,
    })
    return list(db.session.execute(stmt).scalars())


def get_risk(viewer: Viewer, risk_id: int) -> Risk:
    stmt = _scoped_select(Risk, viewer, {"id": risk_id})
    risk = db.session.execute(stmt).scalar_one_or_none()
    if risk is None:
        raise NotFoundError(resource="Risk", resource_id=risk_id)
    return risk


def memberships_in_scope(viewer: Viewer, *, campus_id: str | None = None) -> list[tuple]:
    """``(Campus, Unit)`` pairs visible to ``viewer``, ordered by campus then unit name.

    A unit that belongs to two campuses yields two pairs; each pair is
    evaluated against its own campus's submissions.
    """
    pairs = []
    for campus in db.session.execute(select(Campus).order_by(Campus.name)).scalars():
        if campus_id is not None and campus.id != campus_id:
            continue
        if viewer.is_campus_supervisor and campus.id != viewer.campus_id:
            continue
        for unit in campus.units:
            if viewer.is_admin or viewer.is_campus_supervisor:
                pairs.append((campus, unit))
            elif viewer.is_unit_supervisor:
                if unit.vice_president_id == viewer.user_id:
                    pairs.append((campus, unit))
            elif unit.id == viewer.unit_id:
                pairs.append((campus, unit))
    return pairs


def campuses_in_scope(viewer: Viewer) -> list:
    if viewer.is_admin:
        return list_campuses()
    seen = {}
    for campus, _unit in memberships_in_scope(viewer):
        seen.setdefault(campus.id, campus)
    return list(seen.values())


def institution_memberships() -> list[tuple]:
    """Every ``(Campus, Unit)`` pair, unscoped, for the public transparency board."""
    return [
        (campus, unit)
        for campus in db.session.execute(select(Campus).order_by(Campus.name)).scalars()
        for unit in campus.units
    ]


def list_campuses() -> list:
    return list(db.session.execute(select(Campus).order_by(Campus.name)).scalars())


def list_units(*, campus_id: str | None = None) -> list:
    stmt = select(Unit).order_by(Unit.name)
    if campus_id is not None:
        stmt = stmt.where(Unit.campuses.any(Campus.id == campus_id))
    return list(db.session.execute(stmt).scalars())


def resolve_membership(unit_id: str | None, campus_id: str | None) -> tuple:
    """Look up the ``(Campus, Unit)`` a write targets.

    Raises:
        ValidationError: either id is missing or unknown, or the unit does
            not belong to the campus.
    """
    details = {}
    unit = db.session.get(Unit, unit_id) if unit_id else None
    campus = db.session.get(Campus, campus_id) if campus_id else None
    if unit is None:
        details["unit_id"] = "required" if not unit_id else f"unknown unit {unit_id!r}"
    if campus is None:
        details["campus_id"] = "required" if not campus_id else f"unknown campus {campus_id!r}"
    if details:
        raise ValidationError("Unit and campus must name an existing membership", details=details)
    if campus.id not in unit.campus_ids:
        raise ValidationError(
            f"Unit {unit.id!r} does not belong to campus {campus.id!r}",
            details={"campus_id": f"must be one of {unit.campus_ids}"},
        )
    return campus, unit
