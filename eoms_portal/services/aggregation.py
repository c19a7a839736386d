"""
Aggregation Layer — dashboard reductions over per-unit completion.

Every consumer goes through the shared Requirement Resolver and Completion
Evaluator; none re-derives what a unit owes.

Consumers:
    leaderboard                 combined annual % per unit, 5 % floor, star rating
    incomplete_units            units still missing documents, most missing first
    compliance_matrix           (campus, unit, type, cycle) presence grid, public board
    on_track_units              units with both cycles fully approved
    units_without_submissions   units that have filed nothing this year
    cycle_breakdown             current submissions per type per cycle
    campus_summary              per-campus roll-up

Completion is counted two ways:
    - leaderboard / incomplete / on-track count a type only when ``approved``
    - compliance_matrix marks a cell ``submitted`` when any current record exists

Inputs:
    memberships: iterable of (campus, unit) pairs (objects with ``id``/``name``),
                 usually ``submission_query.memberships_in_scope(viewer)``
    submissions: snapshot of submission records, history included
"""

from __future__ import annotations

import math
from collections import defaultdict

from eoms_portal.models.submission import CYCLES
from eoms_portal.services.completion import evaluate_unit_year, percent
from eoms_portal.services.report_catalog import DEFAULT_CATALOG, ReportCatalog
from eoms_portal.services.requirement_resolver import action_plan_exempt
from eoms_portal.services.submission_snapshot import current_submissions

DEFAULT_MIN_PERCENT = 5
DEFAULT_STAR_STEP = 20
MAX_STARS = 5

CELL_SUBMITTED = "submitted"
CELL_NOT_APPLICABLE = "not-applicable"
CELL_MISSING = "missing"


# ═════════════════════════════════════════════════════════════════════════════
# Shared helpers
# ═════════════════════════════════════════════════════════════════════════════

def composite_key(campus_id, unit_id, report_type_display, cycle_id) -> str:
    """``{campus}-{unit}-{report type display name}-{cycle}``, each part lower-cased.

    Consumed verbatim by the public transparency board; do not change.
    """
    return "-".join(
        str(part).lower() for part in (campus_id, unit_id, report_type_display, cycle_id)
    )


def stars(percentage: int, step: int = DEFAULT_STAR_STEP) -> int:
    """floor(percentage / step), clamped to 0..5."""
    return max(0, min(MAX_STARS, math.floor(percentage / step)))


def _group_by_unit_campus(submissions, year):
    groups = defaultdict(list)
    for sub in submissions:
        if sub.year == year:
            groups[(sub.unit_id, sub.campus_id)].append(sub)
    return groups


def _in_scope(memberships, campus_id):
    return [(c, u) for c, u in memberships if campus_id is None or c.id == campus_id]


def annual_completions(
    memberships,
    submissions,
    year: int,
    *,
    campus_id: str | None = None,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    require_approved_registry: bool = False,
) -> list[tuple]:
    """``(campus, unit, AnnualCompletion)`` for every membership in scope."""
    groups = _group_by_unit_campus(submissions, year)
    rows = []
    for campus, unit in _in_scope(memberships, campus_id):
        annual = evaluate_unit_year(
            unit.id, campus.id, year, groups.get((unit.id, campus.id), []), catalog,
            require_approved_registry=require_approved_registry,
        )
        rows.append((campus, unit, annual))
    return rows


def _unit_row(campus, unit) -> dict:
    return {
        "unit_id": unit.id,
        "unit_name": unit.name,
        "campus_id": campus.id,
        "campus_name": campus.name,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Leaderboard
# ═════════════════════════════════════════════════════════════════════════════

def leaderboard(
    memberships,
    submissions,
    year: int,
    *,
    campus_id: str | None = None,
    min_percent: int = DEFAULT_MIN_PERCENT,
    star_step: int = DEFAULT_STAR_STEP,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    require_approved_registry: bool = False,
) -> list[dict]:
    """Ranked units for one campus (or all when ``campus_id`` is None).

    Units below ``min_percent`` are treated as not started and dropped.
    Ties keep a stable order by unit name.
    """
    entries = []
    for campus, unit, annual in annual_completions(
        memberships, submissions, year, campus_id=campus_id, catalog=catalog,
        require_approved_registry=require_approved_registry,
    ):
        pct = annual.percentage
        if pct < min_percent:
            continue
        row = _unit_row(campus, unit)
        row.update({
            "percentage": pct,
            "approved_count": annual.approved_count,
            "required_count": annual.required_count,
            "stars": stars(pct, star_step),
        })
        entries.append(row)

    entries.sort(key=lambda r: (-r["percentage"], r["unit_name"], r["campus_name"]))
    for rank, row in enumerate(entries, 1):
        row["rank"] = rank
    return entries


# ═════════════════════════════════════════════════════════════════════════════
# Incomplete / missing
# ═════════════════════════════════════════════════════════════════════════════

def incomplete_units(
    memberships,
    submissions,
    year: int,
    *,
    campus_id: str | None = None,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    require_approved_registry: bool = False,
) -> list[dict]:
    """Units with at least one outstanding required document, most missing first.

    ``missing_count`` is the first cycle's missing count plus the final
    cycle's, each evaluated on its own.
    """
    rows = []
    for campus, unit, annual in annual_completions(
        memberships, submissions, year, campus_id=campus_id, catalog=catalog,
        require_approved_registry=require_approved_registry,
    ):
        if annual.missing_count <= 0:
            continue
        row = _unit_row(campus, unit)
        row.update({
            "missing_count": annual.missing_count,
            "missing_by_cycle": {
                cycle: {
                    "count": result.missing_count,
                    "types": list(result.missing_types),
                    "labels": [catalog.display_name(c) for c in result.missing_types],
                }
                for cycle, result in annual.cycles.items()
            },
            "percentage": annual.percentage,
        })
        rows.append(row)

    rows.sort(key=lambda r: (-r["missing_count"], r["unit_name"], r["campus_name"]))
    return rows


def on_track_units(
    memberships,
    submissions,
    year: int,
    *,
    campus_id: str | None = None,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    require_approved_registry: bool = False,
) -> list[dict]:
    """Units whose every required document in both cycles is approved, grouped by campus."""
    by_campus = {}
    for campus, unit, annual in annual_completions(
        memberships, submissions, year, campus_id=campus_id, catalog=catalog,
        require_approved_registry=require_approved_registry,
    ):
        if not annual.is_complete:
            continue
        group = by_campus.setdefault(campus.id, {
            "campus_id": campus.id,
            "campus_name": campus.name,
            "units": [],
        })
        group["units"].append({"unit_id": unit.id, "unit_name": unit.name})
    return list(by_campus.values())


def units_without_submissions(memberships, submissions, year: int, *, campus_id: str | None = None) -> list[dict]:
    """Units with no submission record at all (any status, any cycle) for the year."""
    groups = _group_by_unit_campus(submissions, year)
    return [
        _unit_row(campus, unit)
        for campus, unit in _in_scope(memberships, campus_id)
        if not groups.get((unit.id, campus.id))
    ]


# ═════════════════════════════════════════════════════════════════════════════
# Compliance matrix (public transparency board + admin report)
# ═════════════════════════════════════════════════════════════════════════════

def classify_cell(current_by_type: dict, report_type: str, exempt: bool, catalog: ReportCatalog) -> str:
    """Presence classification of one (unit, type, cycle) cell.

    An exempt Action Plan is ``not-applicable`` even if a record exists.
    """
    if exempt and report_type == catalog.action_plan_code:
        return CELL_NOT_APPLICABLE
    if report_type in current_by_type:
        return CELL_SUBMITTED
    return CELL_MISSING


def compliance_matrix(
    campuses,
    memberships,
    submissions,
    year: int,
    *,
    available_years=None,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    require_approved_registry: bool = False,
) -> dict:
    """Institution-wide presence grid keyed by composite status key.

    Returns:
        {"year", "available_years", "report_types": [...],
         "campuses": [{"campus_id", "campus_name",
                       "units": [{"unit_id", "unit_name", "statuses": {key: cell}}]}]}
    """
    current = current_submissions(s for s in submissions if s.year == year)
    by_cell = defaultdict(dict)
    for (unit_id, campus_id, _year, cycle_id, report_type), sub in current.items():
        by_cell[(unit_id, campus_id, cycle_id)][report_type] = sub

    units_by_campus = defaultdict(list)
    for campus, unit in memberships:
        units_by_campus[campus.id].append(unit)

    result_campuses = []
    for campus in campuses:
        unit_rows = []
        for unit in sorted(units_by_campus.get(campus.id, []), key=lambda u: u.name):
            statuses = {}
            for cycle_id in CYCLES:
                cycle_current = by_cell.get((unit.id, campus.id, cycle_id), {})
                exempt = action_plan_exempt(
                    list(cycle_current.values()), catalog,
                    require_approved_registry=require_approved_registry,
                )
                for spec in catalog.entries:
                    key = composite_key(campus.id, unit.id, spec.display_name, cycle_id)
                    statuses[key] = classify_cell(cycle_current, spec.code, exempt, catalog)
            unit_rows.append({"unit_id": unit.id, "unit_name": unit.name, "statuses": statuses})
        result_campuses.append({
            "campus_id": campus.id,
            "campus_name": campus.name,
            "units": unit_rows,
        })

    return {
        "year": year,
        "available_years": list(available_years) if available_years is not None else [year],
        "report_types": [spec.display_name for spec in catalog.entries],
        "campuses": result_campuses,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Supplementary roll-ups
# ═════════════════════════════════════════════════════════════════════════════

def cycle_breakdown(submissions, year: int, catalog: ReportCatalog = DEFAULT_CATALOG) -> list[dict]:
    """Number of current submissions per report type, split by cycle."""
    counts = {code: {cycle: 0 for cycle in CYCLES} for code in catalog.codes}
    for (_u, _c, _y, cycle_id, report_type), _sub in current_submissions(
        s for s in submissions if s.year == year
    ).items():
        if report_type in counts and cycle_id in CYCLES:
            counts[report_type][cycle_id] += 1
    return [
        {"report_type": code, "label": catalog.display_name(code), **counts[code]}
        for code in catalog.codes
    ]


def campus_summary(
    memberships,
    submissions,
    year: int,
    *,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    require_approved_registry: bool = False,
) -> list[dict]:
    """Per campus: unit count, fully complete units and pooled completion percentage.

    The percentage pools approved/required counts across the campus's units
    rather than averaging unit percentages.
    """
    summary = {}
    for campus, _unit, annual in annual_completions(
        memberships, submissions, year, catalog=catalog,
        require_approved_registry=require_approved_registry,
    ):
        row = summary.setdefault(campus.id, {
            "campus_id": campus.id,
            "campus_name": campus.name,
            "unit_count": 0,
            "complete_units": 0,
            "approved_count": 0,
            "required_count": 0,
        })
        row["unit_count"] += 1
        row["complete_units"] += int(annual.is_complete)
        row["approved_count"] += annual.approved_count
        row["required_count"] += annual.required_count

    for row in summary.values():
        row["percentage"] = percent(row["approved_count"], row["required_count"])
    return list(summary.values())
