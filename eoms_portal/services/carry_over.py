"""
Carry-Over Operation — reuse a first-cycle document in the final cycle.

The only write the compliance engine performs itself. For report types whose
content is stable across a year (catalog ``carry_over_eligible``), the
submitting unit may clone its current first-cycle record into the final
cycle instead of re-uploading.

Preconditions (all must hold, else CarryOverRefusedError):
    - the type is carry-over eligible
    - a current first-cycle record exists, in any status
    - no final-cycle record exists yet for the type

The new record copies ``link`` and ``year``, starts as ``submitted`` and
carries exactly one system comment. Record and comment are one row, and the
precondition reads and the insert share one session, so a failed write
leaves nothing behind. Two concurrent carry-overs can still both pass the
precondition check; the store's own write ordering decides.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from eoms_portal.core.exceptions import CarryOverRefusedError, ForbiddenError
from eoms_portal.core.viewer import Viewer
from eoms_portal.models import db
from eoms_portal.models.submission import CYCLE_FINAL, CYCLE_FIRST, STATUS_SUBMITTED, SYSTEM_AUTHOR, Submission
from eoms_portal.services.report_catalog import DEFAULT_CATALOG, ReportCatalog
from eoms_portal.services.submission_query import list_submissions
from eoms_portal.services.submission_service import control_number_for
from eoms_portal.services.submission_snapshot import current_by_type, select

logger = logging.getLogger(__name__)

CARRY_OVER_COMMENT = (
    "Carried over from the first cycle submission ({source_id}); content unchanged."
)


def carry_over(
    viewer: Viewer,
    unit_id: str,
    campus_id: str,
    year: int,
    report_type: str,
    catalog: ReportCatalog = DEFAULT_CATALOG,
) -> Submission:
    """Clone the current first-cycle submission of ``report_type`` into the final cycle.

    Commits on success. On a store failure the session is rolled back and
    the original exception propagates unchanged.

    Raises:
        ForbiddenError: viewer is not a member of the unit/campus.
        CarryOverRefusedError: a precondition does not hold; nothing is written.
        ValidationError: unknown report type.
        SQLAlchemyError: the store rejected the write.
    """
    spec = catalog.get(report_type)
    if not viewer.belongs_to(unit_id, campus_id):
        raise ForbiddenError("Only the submitting unit can carry over its documents", role=viewer.role)
    if not spec.carry_over_eligible:
        logger.warning("Carry-over refused (not eligible) unit=%s type=%s", unit_id, report_type)
        raise CarryOverRefusedError(CarryOverRefusedError.NOT_ELIGIBLE, report_type, spec.display_name)

    snapshot = list_submissions(
        viewer, unit_id=unit_id, campus_id=campus_id, year=year, report_type=report_type,
    )
    first = select(snapshot, unit_id=unit_id, campus_id=campus_id, year=year, cycle_id=CYCLE_FIRST)
    final = select(snapshot, unit_id=unit_id, campus_id=campus_id, year=year, cycle_id=CYCLE_FINAL)

    source = current_by_type(first).get(report_type)
    if source is None:
        logger.warning("Carry-over refused (no first cycle) unit=%s year=%s type=%s", unit_id, year, report_type)
        raise CarryOverRefusedError(
            CarryOverRefusedError.NO_FIRST_CYCLE_SUBMISSION, report_type, spec.display_name,
        )
    if final:
        logger.warning("Carry-over refused (final exists) unit=%s year=%s type=%s", unit_id, year, report_type)
        raise CarryOverRefusedError(
            CarryOverRefusedError.FINAL_CYCLE_SUBMISSION_EXISTS, report_type, spec.display_name,
        )

    sub = Submission(
        unit_id=unit_id,
        campus_id=campus_id,
        year=source.year,
        cycle_id=CYCLE_FINAL,
        report_type=report_type,
        status=STATUS_SUBMITTED,
        link=source.link,
        risk_rating=source.risk_rating,
        control_number=control_number_for(unit_id, campus_id, source.year, report_type, 0, catalog),
        comments=[],
        submitted_by=viewer.user_id,
        submitted_by_name=viewer.name,
        carried_over_from_id=source.id,
    )
    sub.add_comment(
        CARRY_OVER_COMMENT.format(source_id=source.id),
        author_id=SYSTEM_AUTHOR,
        author_name="System",
        author_role=SYSTEM_AUTHOR,
    )

    try:
        db.session.add(sub)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Carry-over write failed unit=%s year=%s type=%s", unit_id, year, report_type)
        raise

    logger.info(
        "Carried over %s → %s unit=%s campus=%s year=%s type=%s",
        source.id, sub.id, unit_id, campus_id, sub.year, report_type,
    )
    return sub
