"""
Completion Evaluator.

Per cycle: a required type is satisfied only when its current submission is
``approved``; ``submitted`` and ``rejected`` are both still outstanding.

Per year: the two cycles are evaluated independently and combined as
Σapproved / Σrequired. Per-cycle percentages are never averaged, since that
would over-weight a cycle with a smaller denominator.

Usage:
    required = required_types(unit_id, campus_id, 2025, "first", snapshot)
    result = evaluate(required, select(snapshot, unit_id=..., campus_id=..., year=2025, cycle_id="first"))
    result.percentage, result.missing_types

    annual = evaluate_unit_year(unit_id, campus_id, 2025, snapshot)
    annual.percentage
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from eoms_portal.models.submission import CYCLE_FINAL, CYCLE_FIRST, CYCLES, STATUS_APPROVED
from eoms_portal.services.report_catalog import DEFAULT_CATALOG, ReportCatalog
from eoms_portal.services.requirement_resolver import required_types
from eoms_portal.services.submission_snapshot import current_by_type, select


def percent(numerator: int, denominator: int) -> int:
    """Whole-number percentage rounded half up; 0 when nothing is required."""
    if denominator <= 0:
        return 0
    return math.floor(numerator * 100 / denominator + 0.5)


@dataclass(frozen=True)
class CompletionResult:
    """Completion of one unit for one cycle."""
    required_types: tuple[str, ...]
    satisfied_types: tuple[str, ...]
    missing_types: tuple[str, ...]

    @property
    def required_count(self) -> int:
        return len(self.required_types)

    @property
    def approved_count(self) -> int:
        return len(self.satisfied_types)

    @property
    def missing_count(self) -> int:
        return len(self.missing_types)

    @property
    def percentage(self) -> int:
        return percent(self.approved_count, self.required_count)

    @property
    def is_complete(self) -> bool:
        return self.required_count > 0 and not self.missing_types

    def to_dict(self) -> dict:
        return {
            "required_types": list(self.required_types),
            "satisfied_types": list(self.satisfied_types),
            "missing_types": list(self.missing_types),
            "required_count": self.required_count,
            "approved_count": self.approved_count,
            "missing_count": self.missing_count,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class AnnualCompletion:
    """Both cycles of one unit/campus/year, combined by summing counts."""
    unit_id: str
    campus_id: str
    year: int
    first: CompletionResult
    final: CompletionResult

    @property
    def cycles(self) -> dict:
        return {CYCLE_FIRST: self.first, CYCLE_FINAL: self.final}

    @property
    def required_count(self) -> int:
        return self.first.required_count + self.final.required_count

    @property
    def approved_count(self) -> int:
        return self.first.approved_count + self.final.approved_count

    @property
    def missing_count(self) -> int:
        return self.first.missing_count + self.final.missing_count

    @property
    def percentage(self) -> int:
        return percent(self.approved_count, self.required_count)

    @property
    def is_complete(self) -> bool:
        return self.first.is_complete and self.final.is_complete

    def to_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "campus_id": self.campus_id,
            "year": self.year,
            "cycles": {cycle: result.to_dict() for cycle, result in self.cycles.items()},
            "required_count": self.required_count,
            "approved_count": self.approved_count,
            "missing_count": self.missing_count,
            "percentage": self.percentage,
            "is_complete": self.is_complete,
        }


def evaluate(required, submissions_for_key) -> CompletionResult:
    """Evaluate one cycle.

    Args:
        required: Ordered required type codes (from ``required_types``).
        submissions_for_key: Snapshot narrowed to one unit/campus/year/cycle.
            Several records per type are allowed; only the current one counts.

    Returns:
        CompletionResult with ``missing_types`` in the order of ``required``.
    """
    required = tuple(required)
    current = current_by_type(submissions_for_key)
    satisfied = tuple(
        code for code in required
        if code in current and current[code].status == STATUS_APPROVED
    )
    satisfied_set = set(satisfied)
    missing = tuple(code for code in required if code not in satisfied_set)
    return CompletionResult(required_types=required, satisfied_types=satisfied, missing_types=missing)


def evaluate_cycle(
    unit_id,
    campus_id,
    year,
    cycle_id,
    submissions,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    *,
    require_approved_registry: bool = False,
) -> CompletionResult:
    """Resolve then evaluate one cycle from a wider snapshot."""
    scoped = select(submissions, unit_id=unit_id, campus_id=campus_id, year=year, cycle_id=cycle_id)
    required = required_types(
        unit_id, campus_id, year, cycle_id, scoped, catalog,
        require_approved_registry=require_approved_registry,
    )
    return evaluate(required, scoped)


def evaluate_unit_year(
    unit_id,
    campus_id,
    year,
    submissions,
    catalog: ReportCatalog = DEFAULT_CATALOG,
    *,
    require_approved_registry: bool = False,
) -> AnnualCompletion:
    scoped = select(submissions, unit_id=unit_id, campus_id=campus_id, year=year)
    results = {
        cycle: evaluate_cycle(
            unit_id, campus_id, year, cycle, scoped, catalog,
            require_approved_registry=require_approved_registry,
        )
        for cycle in CYCLES
    }
    return AnnualCompletion(
        unit_id=unit_id,
        campus_id=campus_id,
        year=year,
        first=results[CYCLE_FIRST],
        final=results[CYCLE_FINAL],
    )
