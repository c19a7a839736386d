"""
Risk Rating Calculator.

magnitude = likelihood × consequence (each 1-5, so 1-25), mapped to a
three-tier rating through an injected threshold table. The only contract on
the table is monotonicity: a higher magnitude never yields a lower tier.

Usage:
    from eoms_portal.services.risk_rating import rate, RatingThresholds
    result = rate(4, 3)                       # default thresholds
    result.magnitude, result.rating           # (12, "High")

    strict = RatingThresholds.from_config([[1, "Low"], [4, "Medium"], [8, "High"]])
    rate(2, 2, strict).rating                 # "Medium"
"""

from __future__ import annotations

from dataclasses import dataclass

from eoms_portal.core.exceptions import ValidationError
from eoms_portal.models.risk import RISK_TIERS
from eoms_portal.models.submission import RISK_RATING_LOW, RISK_RATING_MEDIUM_HIGH

SCALE_MIN = 1
SCALE_MAX = 5

_TIER_RANK = {tier: rank for rank, tier in enumerate(RISK_TIERS)}


@dataclass(frozen=True)
class RiskRating:
    likelihood: int
    consequence: int
    magnitude: int
    rating: str

    def to_dict(self) -> dict:
        return {
            "likelihood": self.likelihood,
            "consequence": self.consequence,
            "magnitude": self.magnitude,
            "rating": self.rating,
        }


@dataclass(frozen=True)
class RatingThresholds:
    """Ascending ``(min_magnitude, tier)`` bands.

    The first band must start at 1 so every magnitude has a tier, band
    starts must strictly increase, and tiers must never step down.
    """
    bands: tuple[tuple[int, str], ...]

    def __post_init__(self):
        if not self.bands:
            raise ValueError("rating thresholds must define at least one band")
        if self.bands[0][0] != 1:
            raise ValueError("the first rating band must start at magnitude 1")
        previous_start, previous_rank = 0, -1
        for start, tier in self.bands:
            if tier not in _TIER_RANK:
                raise ValueError(f"unknown rating tier {tier!r}; expected one of {RISK_TIERS}")
            if start <= previous_start:
                raise ValueError("rating band starts must be strictly increasing")
            if _TIER_RANK[tier] < previous_rank:
                raise ValueError(f"rating thresholds are not monotonic at magnitude {start}")
            previous_start, previous_rank = start, _TIER_RANK[tier]

    @classmethod
    def from_config(cls, raw) -> RatingThresholds:
        """Build from the ``RISK_RATING_THRESHOLDS`` config value (list of pairs)."""
        return cls(tuple((int(start), str(tier)) for start, tier in raw))

    def tier_for(self, magnitude: int) -> str:
        tier = self.bands[0][1]
        for start, band_tier in self.bands:
            if magnitude >= start:
                tier = band_tier
            else:
                break
        return tier


DEFAULT_THRESHOLDS = RatingThresholds(((1, "Low"), (5, "Medium"), (10, "High")))


def _check_scale(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{name} must be an integer between {SCALE_MIN} and {SCALE_MAX}",
            details={name: repr(value)},
        )
    if not SCALE_MIN <= value <= SCALE_MAX:
        raise ValidationError(
            f"{name} must be between {SCALE_MIN} and {SCALE_MAX}, got {value}",
            details={name: value},
        )
    return value


def magnitude(likelihood: int, consequence: int) -> int:
    """likelihood × consequence. Out-of-range inputs raise, never clamp."""
    return _check_scale("likelihood", likelihood) * _check_scale("consequence", consequence)


def rate(likelihood: int, consequence: int, thresholds: RatingThresholds = DEFAULT_THRESHOLDS) -> RiskRating:
    mag = magnitude(likelihood, consequence)
    return RiskRating(
        likelihood=likelihood,
        consequence=consequence,
        magnitude=mag,
        rating=thresholds.tier_for(mag),
    )


def registry_rating(rating: str) -> str:
    """Map a tier to the flag recorded on a Risk Registry submission."""
    if rating not in _TIER_RANK:
        raise ValidationError(f"Unknown risk rating {rating!r}", details={"rating": rating})
    return RISK_RATING_LOW if rating == "Low" else RISK_RATING_MEDIUM_HIGH
