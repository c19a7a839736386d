"""
Requirement Resolver — which report types a unit owes for one cycle.

Start from the full catalog in canonical order; drop the Risk/Opportunity
Action Plan only when the cycle's current Risk Registry submission records
``risk_rating == "low"``. The decision is cycle-local: the final cycle is
resolved from the final cycle's own registry, never from the first's.

An absent registry, or one rated ``medium-high``, leaves the Action Plan
required.
"""

from __future__ import annotations

import logging

from eoms_portal.models.submission import RISK_RATING_LOW, STATUS_APPROVED
from eoms_portal.services.report_catalog import DEFAULT_CATALOG, ReportCatalog
from eoms_portal.services.submission_snapshot import current_by_type, select, validate_cycle

logger = logging.getLogger(__name__)


def action_plan_exempt(
    submissions_for_key,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    *,
    require_approved_registry: bool = False,
) -> bool:
    """True when the current registry submission of this key is rated low.

    ``submissions_for_key`` must already be narrowed to one
    unit/campus/year/cycle. With ``require_approved_registry`` the low
    rating only counts once the registry itself has been approved.
    """
    registry = current_by_type(submissions_for_key).get(catalog.registry_code)
    if registry is None or registry.risk_rating != RISK_RATING_LOW:
        return False
    if require_approved_registry and registry.status != STATUS_APPROVED:
        return False
    return True


def required_types(
    unit_id,
    campus_id,
    year,
    cycle_id,
    submissions,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    *,
    require_approved_registry: bool = False,
) -> tuple[str, ...]:
    """Ordered report type codes required of a unit for one cycle.

    ``submissions`` may be any wider snapshot; records outside the
    unit/campus/year/cycle key are ignored. Raises ``ValidationError`` for
    a malformed ``cycle_id``.
    """
    validate_cycle(cycle_id)
    scoped = select(submissions, unit_id=unit_id, campus_id=campus_id, year=year, cycle_id=cycle_id)
    if action_plan_exempt(scoped, catalog, require_approved_registry=require_approved_registry):
        logger.debug(
            "Action plan exempt for unit=%s campus=%s year=%s cycle=%s",
            unit_id, campus_id, year, cycle_id,
        )
        return tuple(c for c in catalog.codes if c != catalog.action_plan_code)
    return catalog.codes
