"""
EOMS Compliance Portal
Tests — requirement resolver and current-record reduction.

Covers:
    - most-recent-wins reduction per key, deterministic tie-break
    - Action Plan exemption only on a current low-rated registry
    - exemption decided per cycle, never borrowed from the other cycle
    - malformed cycle ids rejected
"""

from datetime import datetime, timezone

import pytest

from eoms_portal.core.exceptions import ValidationError
from eoms_portal.services.report_catalog import (
    DEFAULT_CATALOG,
    RISK_ACTION_PLAN,
    RISK_REGISTRY,
    SWOT_ANALYSIS,
)
from eoms_portal.services.requirement_resolver import action_plan_exempt, required_types
from eoms_portal.services.submission_snapshot import current_submissions, select


def _required(snapshot, cycle_id="first", **kw):
    return required_types("eng", "main", 2025, cycle_id, snapshot, **kw)


class TestCurrentSubmissions:
    def test_latest_record_wins(self, make_submission):
        old = make_submission(SWOT_ANALYSIS, "rejected")
        new = make_submission(SWOT_ANALYSIS, "approved")
        current = current_submissions([new, old])
        assert list(current.values()) == [new]

    def test_equal_timestamps_break_tie_on_id(self, make_submission):
        at = datetime(2025, 3, 1, tzinfo=timezone.utc)
        a = make_submission(SWOT_ANALYSIS, created_at=at, id="aaaa")
        b = make_submission(SWOT_ANALYSIS, created_at=at, id="bbbb")
        assert list(current_submissions([a, b]).values()) == [b]
        assert list(current_submissions([b, a]).values()) == [b]

    def test_naive_timestamps_compare_as_utc(self, make_submission):
        aware = make_submission(SWOT_ANALYSIS, created_at=datetime(2025, 3, 1, tzinfo=timezone.utc))
        naive = make_submission(SWOT_ANALYSIS, created_at=datetime(2025, 3, 2))
        assert list(current_submissions([aware, naive]).values()) == [naive]

    def test_select_narrows_to_key(self, make_submission):
        mine = make_submission(SWOT_ANALYSIS)
        other_campus = make_submission(SWOT_ANALYSIS, campus_id="north")
        final = make_submission(SWOT_ANALYSIS, cycle_id="final")
        snapshot = [mine, other_campus, final]
        assert select(snapshot, unit_id="eng", campus_id="main", year=2025, cycle_id="first") == [mine]
        assert len(select(snapshot, unit_id="eng", campus_id="main", year=2025)) == 2


class TestRequiredTypes:
    def test_all_six_required_without_registry(self):
        assert _required([]) == DEFAULT_CATALOG.codes
        assert len(_required([])) == 6

    def test_low_registry_exempts_action_plan(self, make_submission):
        snapshot = [make_submission(RISK_REGISTRY, "approved", risk_rating="low")]
        required = _required(snapshot)
        assert len(required) == 5
        assert RISK_ACTION_PLAN not in required

    def test_medium_high_registry_keeps_action_plan(self, make_submission):
        snapshot = [make_submission(RISK_REGISTRY, "approved", risk_rating="medium-high")]
        assert RISK_ACTION_PLAN in _required(snapshot)

    def test_pending_low_registry_exempts_by_default(self, make_submission):
        snapshot = [make_submission(RISK_REGISTRY, "submitted", risk_rating="low")]
        assert RISK_ACTION_PLAN not in _required(snapshot)
        assert RISK_ACTION_PLAN in _required(snapshot, require_approved_registry=True)

    def test_superseded_low_registry_does_not_exempt(self, make_submission):
        snapshot = [
            make_submission(RISK_REGISTRY, "rejected", risk_rating="low"),
            make_submission(RISK_REGISTRY, "submitted", risk_rating="medium-high"),
        ]
        assert RISK_ACTION_PLAN in _required(snapshot)

    def test_exemption_is_cycle_local(self, make_submission):
        snapshot = [make_submission(RISK_REGISTRY, "approved", risk_rating="low", cycle_id="first")]
        assert RISK_ACTION_PLAN not in _required(snapshot, "first")
        assert RISK_ACTION_PLAN in _required(snapshot, "final")

    def test_other_units_registry_ignored(self, make_submission):
        snapshot = [make_submission(RISK_REGISTRY, "approved", risk_rating="low", unit_id="lib")]
        assert RISK_ACTION_PLAN in _required(snapshot)

    def test_required_count_is_five_iff_current_low_registry(self, make_submission):
        cases = [
            ([], False),
            ([make_submission(RISK_REGISTRY, "approved", risk_rating="low")], True),
            ([make_submission(RISK_REGISTRY, "rejected", risk_rating="low")], True),
            ([make_submission(RISK_REGISTRY, "approved", risk_rating="medium-high")], False),
        ]
        for snapshot, exempt in cases:
            assert (len(_required(snapshot)) == 5) is exempt
            assert action_plan_exempt(snapshot) is exempt

    def test_canonical_order_preserved(self, make_submission):
        snapshot = [make_submission(RISK_REGISTRY, "approved", risk_rating="low")]
        required = _required(snapshot)
        assert list(required) == [c for c in DEFAULT_CATALOG.codes if c != RISK_ACTION_PLAN]

    @pytest.mark.parametrize("cycle_id", ["second", "", None, "First"])
    def test_malformed_cycle_rejected(self, cycle_id):
        with pytest.raises(ValidationError):
            _required([], cycle_id)
