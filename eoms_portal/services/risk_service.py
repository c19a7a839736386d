"""Risk register service layer.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Risk create / update with magnitude + rating from the rating calculator
- 5×5 likelihood × consequence heatmap
- Suggested registry flag (low / medium-high) for a unit's year
"""
import logging

from eoms_portal.core.exceptions import ForbiddenError, ValidationError
from eoms_portal.core.viewer import Viewer
from eoms_portal.models import db
from eoms_portal.models.risk import RISK_STATUSES, RISK_TYPES, Risk
from eoms_portal.services.risk_rating import DEFAULT_THRESHOLDS, RatingThresholds, rate, registry_rating
from eoms_portal.services.submission_query import resolve_membership
from eoms_portal.utils.helpers import parse_year

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("objective", "description", "current_controls", "treatment_action")


def _check_choice(field, value, allowed):
    if value not in allowed:
        raise ValidationError(f"Invalid {field} {value!r}", details={field: f"must be one of {sorted(allowed)}"})
    return value


def _check_action_plan(rating, treatment_action):
    if rating in ("Medium", "High") and not (treatment_action or "").strip():
        raise ValidationError(
            "A treatment action is required for Medium/High ratings",
            details={"treatment_action": "required"},
        )


def create_risk(viewer: Viewer, data: dict, thresholds: RatingThresholds = DEFAULT_THRESHOLDS) -> Risk:
    """Log a risk or opportunity for the viewer's unit.

    Returns:
        Risk instance (already flushed).
    """
    unit_id = data.get("unit_id") or viewer.unit_id
    campus_id = data.get("campus_id") or viewer.campus_id
    if not viewer.is_admin and not viewer.belongs_to(unit_id, campus_id):
        raise ForbiddenError("Risks can only be logged for your own unit", role=viewer.role)
    resolve_membership(unit_id, campus_id)

    objective = (data.get("objective") or "").strip()
    if not objective:
        raise ValidationError("objective is required", details={"objective": "required"})

    result = rate(data.get("likelihood"), data.get("consequence"), thresholds)
    risk = Risk(
        unit_id=unit_id,
        campus_id=campus_id,
        year=parse_year(data.get("year")),
        objective=objective,
        type=_check_choice("type", data.get("type", "Risk"), RISK_TYPES),
        description=data.get("description", ""),
        current_controls=data.get("current_controls", ""),
        likelihood=result.likelihood,
        consequence=result.consequence,
        magnitude=result.magnitude,
        rating=result.rating,
        treatment_action=data.get("treatment_action", ""),
        status=_check_choice("status", data.get("status", "Open"), RISK_STATUSES),
        created_by=viewer.user_id,
    )
    _check_action_plan(risk.rating, risk.treatment_action)
    db.session.add(risk)
    db.session.flush()
    logger.info("Risk %s logged unit=%s magnitude=%d rating=%s", risk.id, unit_id, risk.magnitude, risk.rating)
    return risk


def update_risk(viewer: Viewer, risk: Risk, data: dict, thresholds: RatingThresholds = DEFAULT_THRESHOLDS) -> Risk:
    """Update a risk, re-rating when likelihood or consequence changes.

    All input is validated before any attribute of ``risk`` changes.
    """
    if not viewer.is_admin and not viewer.belongs_to(risk.unit_id):
        raise ForbiddenError("Risks can only be edited by their own unit", role=viewer.role)

    changes = {field: data[field] for field in _EDITABLE_FIELDS if field in data}
    if "type" in data:
        changes["type"] = _check_choice("type", data["type"], RISK_TYPES)
    if "status" in data:
        changes["status"] = _check_choice("status", data["status"], RISK_STATUSES)

    if "likelihood" in data or "consequence" in data:
        result = rate(
            data.get("likelihood", risk.likelihood),
            data.get("consequence", risk.consequence),
            thresholds,
        )
        changes.update(
            likelihood=result.likelihood,
            consequence=result.consequence,
            magnitude=result.magnitude,
            rating=result.rating,
        )

    _check_action_plan(
        changes.get("rating", risk.rating),
        changes.get("treatment_action", risk.treatment_action),
    )

    old_rating = risk.rating
    for field, value in changes.items():
        setattr(risk, field, value)
    if old_rating != risk.rating:
        logger.info("Risk %s re-rated %s → %s", risk.id, old_rating, risk.rating)
    db.session.flush()
    return risk


def compute_heatmap(risks) -> dict:
    """5×5 likelihood × consequence matrix of open risks.

    ``matrix[l-1][c-1]`` lists the risks with likelihood ``l`` and
    consequence ``c``.
    """
    matrix = [[[] for _ in range(5)] for _ in range(5)]
    for r in risks:
        if r.status == "Closed":
            continue
        matrix[r.likelihood - 1][r.consequence - 1].append({
            "id": r.id, "objective": r.objective, "rating": r.rating,
        })

    return {
        "matrix": matrix,
        "labels": {
            "likelihood": ["Rare", "Unlikely", "Possible", "Likely", "Almost Certain"],
            "consequence": ["Insignificant", "Minor", "Moderate", "Major", "Severe"],
        },
    }


def suggested_registry_rating(risks):
    """Registry flag implied by a unit's risks for a year.

    Only open entries are considered unless every entry is Closed, in which
    case all of them are. ``medium-high`` when any considered entry rates
    Medium or High, ``low`` otherwise, None when nothing has been logged.
    """
    open_risks = [r for r in risks if r.status != "Closed"] or list(risks)
    if not open_risks:
        return None
    worst = "High" if any(r.rating == "High" for r in open_risks) else (
        "Medium" if any(r.rating == "Medium" for r in open_risks) else "Low"
    )
    return registry_rating(worst)
