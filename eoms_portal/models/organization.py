"""
EOMS Compliance Portal
Organisation reference models.

Models:
    - Campus: a physical campus of the institution
    - Unit: an office/college that submits compliance documents; a unit may
      belong to one or more campuses (``unit_campuses`` association)
"""

from datetime import datetime, timezone

from eoms_portal.models import db


unit_campuses = db.Table(
    "unit_campuses",
    db.Column("unit_id", db.String(64), db.ForeignKey("units.id", ondelete="CASCADE"), primary_key=True),
    db.Column("campus_id", db.String(64), db.ForeignKey("campuses.id", ondelete="CASCADE"), primary_key=True),
)


class Campus(db.Model):
    __tablename__ = "campuses"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(300), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
        }

    def __repr__(self):
        return f"<Campus {self.id}: {self.name}>"


class Unit(db.Model):
    """
    A submitting unit.

    ``vice_president_id`` names the supervising vice president, whose
    read scope covers every unit they supervise.
    """

    __tablename__ = "units"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    vice_president_id = db.Column(db.String(64), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    campuses = db.relationship(
        "Campus",
        secondary=unit_campuses,
        lazy="selectin",
        order_by="Campus.name",
        backref=db.backref("units", lazy="selectin", order_by="Unit.name"),
    )

    @property
    def campus_ids(self):
        return [c.id for c in self.campuses]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "vice_president_id": self.vice_president_id,
            "campus_ids": self.campus_ids,
        }

    def __repr__(self):
        return f"<Unit {self.id}: {self.name}>"
