"""
EOMS Compliance Portal
Submission model.

A Submission is one unit's document for one report type in one cycle of
one academic year. Content is never stored here, only a link to it.

Resubmissions create new rows, so several records may share the key
(unit_id, campus_id, year, cycle_id, report_type). The current record for
a key is the most recently created one; see
``eoms_portal.services.submission_snapshot.current_submissions``.
"""

import uuid
from datetime import datetime, timezone

from eoms_portal.models import db


# ── Constants ────────────────────────────────────────────────────────────────

CYCLE_FIRST = "first"
CYCLE_FINAL = "final"
CYCLES = (CYCLE_FIRST, CYCLE_FINAL)

STATUS_SUBMITTED = "submitted"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
SUBMISSION_STATUSES = {STATUS_SUBMITTED, STATUS_APPROVED, STATUS_REJECTED}

RISK_RATING_LOW = "low"
RISK_RATING_MEDIUM_HIGH = "medium-high"
REGISTRY_RISK_RATINGS = {RISK_RATING_LOW, RISK_RATING_MEDIUM_HIGH}

SYSTEM_AUTHOR = "system"


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class Submission(db.Model):
    __tablename__ = "submissions"
    __table_args__ = (
        db.Index("ix_submissions_key", "unit_id", "campus_id", "year", "cycle_id", "report_type"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    unit_id = db.Column(db.String(64), db.ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    campus_id = db.Column(db.String(64), db.ForeignKey("campuses.id", ondelete="CASCADE"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False, index=True)
    cycle_id = db.Column(db.String(10), nullable=False, comment="first | final")
    report_type = db.Column(db.String(60), nullable=False, comment="report catalog code")
    status = db.Column(db.String(20), nullable=False, default=STATUS_SUBMITTED, index=True)
    link = db.Column(db.String(1000), nullable=False, comment="external content reference")
    risk_rating = db.Column(db.String(20), nullable=True, comment="registry only: low | medium-high")
    control_number = db.Column(db.String(80), default="")
    comments = db.Column(db.JSON, default=list)

    submitted_by = db.Column(db.String(64), default="")
    submitted_by_name = db.Column(db.String(200), default="")
    carried_over_from_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def key(self):
        return (self.unit_id, self.campus_id, self.year, self.cycle_id, self.report_type)

    def add_comment(self, text, *, author_id, author_name, author_role):
        """Append a review comment.

        The list is reassigned rather than mutated so SQLAlchemy detects
        the change on the JSON column.
        """
        comment = {
            "author_id": author_id,
            "author_name": author_name,
            "author_role": author_role,
            "text": text,
            "created_at": _utcnow().isoformat(),
        }
        self.comments = list(self.comments or []) + [comment]
        return comment

    def to_dict(self):
        return {
            "id": self.id,
            "unit_id": self.unit_id,
            "campus_id": self.campus_id,
            "year": self.year,
            "cycle_id": self.cycle_id,
            "report_type": self.report_type,
            "status": self.status,
            "link": self.link,
            "risk_rating": self.risk_rating,
            "control_number": self.control_number,
            "comments": list(self.comments or []),
            "submitted_by": self.submitted_by,
            "submitted_by_name": self.submitted_by_name,
            "carried_over_from_id": self.carried_over_from_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Submission {self.unit_id}/{self.year}/{self.cycle_id}/{self.report_type}: {self.status}>"
