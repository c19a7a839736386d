"""Snapshot helpers shared by every compliance computation.

A snapshot is any iterable of submission records read immediately before a
computation. Records are accessed by attribute only, so ORM instances and
transient objects work alike.

current_submissions: most-recent-wins reduction per submission key
select:              narrow a snapshot to one unit/campus/year/cycle
validate_cycle:      fail fast on malformed cycle ids
"""

from __future__ import annotations

from datetime import datetime, timezone

from eoms_portal.core.exceptions import ValidationError
from eoms_portal.models.submission import CYCLES

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def validate_cycle(cycle_id) -> str:
    if cycle_id not in CYCLES:
        raise ValidationError(
            f"Invalid cycle id {cycle_id!r}",
            details={"cycle_id": f"must be one of {list(CYCLES)}"},
        )
    return cycle_id


def _recency(submission):
    created = submission.created_at
    if created is None:
        created = _EPOCH
    elif created.tzinfo is None:
        # SQLite hands back naive datetimes for timezone-aware columns
        created = created.replace(tzinfo=timezone.utc)
    return created, str(submission.id or "")


def current_submissions(submissions) -> dict:
    """Reduce a snapshot to ``{key: current submission}``.

    The key is (unit_id, campus_id, year, cycle_id, report_type). The
    current record is the one with the greatest ``created_at``; ties are
    broken by ``id`` so the reduction is deterministic.
    """
    current = {}
    for sub in submissions:
        key = (sub.unit_id, sub.campus_id, sub.year, sub.cycle_id, sub.report_type)
        held = current.get(key)
        if held is None or _recency(sub) > _recency(held):
            current[key] = sub
    return current


def current_by_type(submissions_for_key) -> dict:
    """``{report_type: current submission}`` for a snapshot of a single key prefix."""
    return {key[4]: sub for key, sub in current_submissions(submissions_for_key).items()}


def select(submissions, *, unit_id, campus_id, year, cycle_id=None) -> list:
    """Records of one unit/campus/year (and cycle, when given)."""
    if cycle_id is not None:
        validate_cycle(cycle_id)
    return [
        s for s in submissions
        if s.unit_id == unit_id
        and s.campus_id == campus_id
        and s.year == year
        and (cycle_id is None or s.cycle_id == cycle_id)
    ]
