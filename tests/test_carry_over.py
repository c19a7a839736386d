"""
EOMS Compliance Portal
Tests — carry-over of first-cycle documents into the final cycle.

Covers:
    - successful carry-over: new final-cycle record, one system comment
    - refusal when the type is not eligible
    - refusal when no first-cycle record exists
    - refusal when a final-cycle record already exists (including a second invocation)
    - no write on refusal, membership enforced
    - store failure rolls back and propagates
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from eoms_portal.core.exceptions import CarryOverRefusedError, ForbiddenError, ValidationError
from eoms_portal.core.viewer import Viewer
from eoms_portal.models import db
from eoms_portal.models.submission import Submission
from eoms_portal.services.carry_over import carry_over
from eoms_portal.services.report_catalog import INTERESTED_PARTIES, OPERATIONAL_PLAN, SWOT_ANALYSIS

MEMBER = Viewer(user_id="u-1", name="Ana Cruz", role="unit_coordinator", unit_id="eng", campus_id="main")


def _count():
    return db.session.execute(select(func.count()).select_from(Submission)).scalar()


def _store(*subs):
    db.session.add_all(subs)
    db.session.commit()
    return subs


class TestCarryOverSuccess:
    def test_first_cycle_approved_document_is_carried(self, org, make_submission):
        (source,) = _store(make_submission(INTERESTED_PARTIES, "approved", link="https://drive.example.edu/neip"))

        new = carry_over(MEMBER, "eng", "main", 2025, INTERESTED_PARTIES)

        assert new.cycle_id == "final"
        assert new.status == "submitted"
        assert new.link == "https://drive.example.edu/neip"
        assert new.year == 2025
        assert new.carried_over_from_id == source.id
        assert len(new.comments) == 1
        assert new.comments[0]["author_id"] == "system"
        assert source.id in new.comments[0]["text"]
        assert new.control_number == "EOMS-MC-COE-2025-NEIP-REV0"
        assert _count() == 2

    def test_second_invocation_refused(self, org, make_submission):
        _store(make_submission(INTERESTED_PARTIES, "approved"))
        carry_over(MEMBER, "eng", "main", 2025, INTERESTED_PARTIES)

        with pytest.raises(CarryOverRefusedError) as exc:
            carry_over(MEMBER, "eng", "main", 2025, INTERESTED_PARTIES)
        assert exc.value.reason == CarryOverRefusedError.FINAL_CYCLE_SUBMISSION_EXISTS
        assert _count() == 2

    def test_pending_first_cycle_record_can_be_carried(self, org, make_submission):
        _store(make_submission(SWOT_ANALYSIS, "submitted"))
        assert carry_over(MEMBER, "eng", "main", 2025, SWOT_ANALYSIS).status == "submitted"


class TestCarryOverRefused:
    def test_not_eligible(self, org, make_submission):
        _store(make_submission(OPERATIONAL_PLAN, "approved"))
        with pytest.raises(CarryOverRefusedError) as exc:
            carry_over(MEMBER, "eng", "main", 2025, OPERATIONAL_PLAN)
        assert exc.value.reason == CarryOverRefusedError.NOT_ELIGIBLE
        assert _count() == 1

    def test_no_first_cycle_record(self, org):
        with pytest.raises(CarryOverRefusedError) as exc:
            carry_over(MEMBER, "eng", "main", 2025, SWOT_ANALYSIS)
        assert exc.value.reason == CarryOverRefusedError.NO_FIRST_CYCLE_SUBMISSION
        assert _count() == 0

    def test_first_cycle_of_other_year_does_not_count(self, org, make_submission):
        _store(make_submission(SWOT_ANALYSIS, "approved", year=2024))
        with pytest.raises(CarryOverRefusedError) as exc:
            carry_over(MEMBER, "eng", "main", 2025, SWOT_ANALYSIS)
        assert exc.value.reason == CarryOverRefusedError.NO_FIRST_CYCLE_SUBMISSION

    def test_rejected_final_record_still_blocks(self, org, make_submission):
        _store(
            make_submission(SWOT_ANALYSIS, "approved"),
            make_submission(SWOT_ANALYSIS, "rejected", cycle_id="final"),
        )
        with pytest.raises(CarryOverRefusedError) as exc:
            carry_over(MEMBER, "eng", "main", 2025, SWOT_ANALYSIS)
        assert exc.value.reason == CarryOverRefusedError.FINAL_CYCLE_SUBMISSION_EXISTS
        assert _count() == 2

    def test_non_member_forbidden(self, org, make_submission):
        _store(make_submission(SWOT_ANALYSIS, "approved"))
        outsider = Viewer(user_id="u-2", role="unit_coordinator", unit_id="lib", campus_id="north")
        with pytest.raises(ForbiddenError):
            carry_over(outsider, "eng", "main", 2025, SWOT_ANALYSIS)

    def test_unknown_report_type(self, org):
        with pytest.raises(ValidationError):
            carry_over(MEMBER, "eng", "main", 2025, "annual_report")


class TestCarryOverStoreFailure:
    def test_write_failure_rolls_back_and_propagates(self, org, make_submission, monkeypatch):
        _store(make_submission(SWOT_ANALYSIS, "approved"))

        def _fail():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db.session, "commit", _fail)
        with pytest.raises(OperationalError):
            carry_over(MEMBER, "eng", "main", 2025, SWOT_ANALYSIS)
        monkeypatch.undo()
        assert _count() == 1
