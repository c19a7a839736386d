"""
EOMS Compliance Portal
Risk register model.

Each unit logs risks and opportunities per year. Magnitude and rating are
derived from likelihood × consequence by the rating calculator
(``eoms_portal.services.risk_rating``) whenever either input changes.
"""

from datetime import datetime, timezone

from eoms_portal.models import db


# ── Constants ────────────────────────────────────────────────────────────────

RISK_TYPES = {"Risk", "Opportunity"}
RISK_STATUSES = {"Open", "In Progress", "Closed"}
RISK_TIERS = ("Low", "Medium", "High")


class Risk(db.Model):
    __tablename__ = "risks"

    id = db.Column(db.Integer, primary_key=True)
    unit_id = db.Column(db.String(64), db.ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    campus_id = db.Column(db.String(64), db.ForeignKey("campuses.id", ondelete="CASCADE"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False, index=True)

    objective = db.Column(db.String(500), nullable=False)
    type = db.Column(db.String(20), default="Risk")
    description = db.Column(db.Text, default="")
    current_controls = db.Column(db.Text, default="")

    likelihood = db.Column(db.Integer, nullable=False, comment="1-5 scale")
    consequence = db.Column(db.Integer, nullable=False, comment="1-5 scale")
    magnitude = db.Column(db.Integer, nullable=False, comment="likelihood × consequence")
    rating = db.Column(db.String(10), nullable=False, comment="Low / Medium / High")

    treatment_action = db.Column(db.Text, default="")
    status = db.Column(db.String(20), default="Open", index=True)

    created_by = db.Column(db.String(64), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "unit_id": self.unit_id,
            "campus_id": self.campus_id,
            "year": self.year,
            "objective": self.objective,
            "type": self.type,
            "description": self.description,
            "current_controls": self.current_controls,
            "likelihood": self.likelihood,
            "consequence": self.consequence,
            "magnitude": self.magnitude,
            "rating": self.rating,
            "treatment_action": self.treatment_action,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Risk {self.id}: {self.objective[:40]} ({self.rating})>"
