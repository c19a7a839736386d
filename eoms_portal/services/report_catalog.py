"""
Report Catalog — the single source of truth for required report types.

The six document kinds every unit supplies per cycle, in canonical order.
Canonical order drives display, the ``missing_types`` list and the
composite status key, so entries must never be re-sorted.

Usage:
    from eoms_portal.services.report_catalog import DEFAULT_CATALOG
    DEFAULT_CATALOG.codes            # canonical order
    DEFAULT_CATALOG.get("swot_analysis").carry_over_eligible
"""

from __future__ import annotations

from dataclasses import dataclass, field

from eoms_portal.core.exceptions import ValidationError


OPERATIONAL_PLAN = "operational_plan"
QUALITY_OBJECTIVES_MONITORING = "quality_objectives_monitoring"
RISK_REGISTRY = "risk_opportunity_registry"
RISK_ACTION_PLAN = "risk_opportunity_action_plan"
INTERESTED_PARTIES = "interested_parties"
SWOT_ANALYSIS = "swot_analysis"


@dataclass(frozen=True)
class ReportTypeSpec:
    """One catalog entry."""
    code: str
    display_name: str
    short_code: str
    carry_over_eligible: bool = False

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "display_name": self.display_name,
            "short_code": self.short_code,
            "carry_over_eligible": self.carry_over_eligible,
        }


@dataclass(frozen=True)
class ReportCatalog:
    """Versioned, ordered catalog of report types.

    ``registry_code`` names the Risk Registry type whose ``risk_rating``
    decides whether ``action_plan_code`` is required for a cycle.
    """
    version: str
    entries: tuple[ReportTypeSpec, ...]
    registry_code: str = RISK_REGISTRY
    action_plan_code: str = RISK_ACTION_PLAN
    _by_code: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        by_code = {}
        for entry in self.entries:
            if entry.code in by_code:
                raise ValueError(f"duplicate report type {entry.code!r} in catalog {self.version}")
            by_code[entry.code] = entry
        for designated in (self.registry_code, self.action_plan_code):
            if designated not in by_code:
                raise ValueError(f"catalog {self.version} has no entry for {designated!r}")
        object.__setattr__(self, "_by_code", by_code)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.entries)

    def get(self, code: str) -> ReportTypeSpec:
        try:
            return self._by_code[code]
        except KeyError:
            raise ValidationError(
                f"Unknown report type {code!r}",
                details={"report_type": f"must be one of {list(self.codes)}"},
            ) from None

    def display_name(self, code: str) -> str:
        return self.get(code).display_name

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "registry_code": self.registry_code,
            "action_plan_code": self.action_plan_code,
            "entries": [e.to_dict() for e in self.entries],
        }


DEFAULT_CATALOG = ReportCatalog(
    version="2025.1",
    entries=(
        ReportTypeSpec(OPERATIONAL_PLAN, "Operational Plan", "OP"),
        ReportTypeSpec(QUALITY_OBJECTIVES_MONITORING, "Quality Objectives Monitoring", "QOM"),
        ReportTypeSpec(RISK_REGISTRY, "Risk and Opportunity Registry", "ROR"),
        ReportTypeSpec(RISK_ACTION_PLAN, "Risk and Opportunity Action Plan", "ROA"),
        ReportTypeSpec(INTERESTED_PARTIES, "Needs and Expectation of Interested Parties", "NEIP",
                       carry_over_eligible=True),
        ReportTypeSpec(SWOT_ANALYSIS, "SWOT Analysis", "SWOT", carry_over_eligible=True),
    ),
)


def get_catalog(version: str | None = None) -> ReportCatalog:
    """Return the catalog for ``version`` (the deployed one when omitted)."""
    if version is None or version == DEFAULT_CATALOG.version:
        return DEFAULT_CATALOG
    raise ValueError(f"Unknown report catalog version {version!r}")
