"""
EOMS Compliance Portal
Tests — Compliance dashboards and the public transparency board.

Covers:
    - unit compliance (per-cycle + annual)
    - leaderboard, incomplete, on-track, without-submissions, cycle breakdown, campus summary
    - scope of dashboards per role
    - public board: no identity needed, presence semantics
"""

import pytest

from eoms_portal.models import db
from eoms_portal.services.report_catalog import (
    INTERESTED_PARTIES,
    OPERATIONAL_PLAN,
    QUALITY_OBJECTIVES_MONITORING,
    RISK_REGISTRY,
    SWOT_ANALYSIS,
)

_NON_REGISTRY = [OPERATIONAL_PLAN, QUALITY_OBJECTIVES_MONITORING, INTERESTED_PARTIES, SWOT_ANALYSIS]


@pytest.fixture()
def admin(identity_headers):
    return identity_headers("admin-1", "admin", unit_id=None, campus_id=None)


@pytest.fixture()
def seeded(org, make_submission):
    """Engineering fully approved in the first cycle (low registry); Library has one pending document."""
    subs = [make_submission(RISK_REGISTRY, "approved", risk_rating="low")]
    subs += [make_submission(code, "approved") for code in _NON_REGISTRY]
    subs.append(make_submission(SWOT_ANALYSIS, "submitted", unit_id="lib", campus_id="north"))
    db.session.add_all(subs)
    db.session.commit()
    return subs


class TestUnitCompliance:
    def test_unit_compliance(self, client, seeded, identity_headers):
        headers = identity_headers("u-1", "unit_coordinator", unit_id="eng", campus_id="main")
        res = client.get("/api/v1/units/eng/compliance?year=2025", headers=headers)
        assert res.status_code == 200
        data = res.get_json()
        first = data["cycles"]["first"]
        assert first["required_count"] == 5
        assert first["percentage"] == 100
        assert first["action_plan_exempt"] is True
        final = data["cycles"]["final"]
        assert final["required_count"] == 6
        assert final["action_plan_exempt"] is False
        assert "SWOT Analysis" in final["missing_labels"]
        assert data["annual"]["approved_count"] == 5
        assert data["annual"]["required_count"] == 11
        assert data["annual"]["percentage"] == 45

    def test_other_unit_not_found(self, client, seeded, identity_headers):
        headers = identity_headers("u-1", "unit_coordinator", unit_id="eng", campus_id="main")
        res = client.get("/api/v1/units/lib/compliance?year=2025&campus_id=north", headers=headers)
        assert res.status_code == 404

    def test_campus_required_for_supervisors(self, client, seeded, admin):
        res = client.get("/api/v1/units/eng/compliance?year=2025", headers=admin)
        assert res.status_code == 422
        res = client.get("/api/v1/units/eng/compliance?year=2025&campus_id=main", headers=admin)
        assert res.status_code == 200


class TestDashboards:
    def test_leaderboard(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/leaderboard?year=2025", headers=admin).get_json()
        assert [r["unit_id"] for r in data["items"]] == ["eng"]
        assert data["items"][0]["percentage"] == 45
        assert data["items"][0]["stars"] == 2

    def test_leaderboard_scoped_to_campus_supervisor(self, client, seeded, identity_headers):
        north = identity_headers("dir-2", "campus_director", unit_id=None, campus_id="north")
        data = client.get("/api/v1/compliance/leaderboard?year=2025", headers=north).get_json()
        assert data["items"] == []

    def test_incomplete(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/incomplete?year=2025&campus_id=main", headers=admin).get_json()
        assert [(r["unit_id"], r["missing_count"]) for r in data["items"]] == [("reg", 12), ("eng", 6)]

    def test_matrix(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/matrix?year=2025", headers=admin).get_json()
        assert data["available_years"] == [2025]
        north = next(c for c in data["campuses"] if c["campus_id"] == "north")
        lib = next(u for u in north["units"] if u["unit_id"] == "lib")
        assert lib["statuses"]["north-lib-swot analysis-first"] == "submitted"

    def test_on_track_empty_until_both_cycles_done(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/on-track?year=2025", headers=admin).get_json()
        assert data["campuses"] == []

    def test_without_submissions(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/without-submissions?year=2025", headers=admin).get_json()
        assert [(r["campus_id"], r["unit_id"]) for r in data["items"]] == [("main", "reg"), ("north", "reg")]

    def test_cycle_breakdown(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/cycle-breakdown?year=2025", headers=admin).get_json()
        swot = next(r for r in data["items"] if r["report_type"] == SWOT_ANALYSIS)
        assert swot["first"] == 2
        assert swot["final"] == 0
        assert swot["label"] == "SWOT Analysis"

    def test_campus_summary(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/campus-summary?year=2025", headers=admin).get_json()
        main = next(r for r in data["items"] if r["campus_id"] == "main")
        assert main["unit_count"] == 2
        assert main["approved_count"] == 5

    def test_campus_summary_filtered_by_campus(self, client, seeded, admin):
        data = client.get("/api/v1/compliance/campus-summary?year=2025&campus_id=main", headers=admin).get_json()
        assert [r["campus_id"] for r in data["items"]] == ["main"]

    def test_bad_year(self, client, seeded, admin):
        res = client.get("/api/v1/compliance/leaderboard?year=abc", headers=admin)
        assert res.status_code == 422


class TestTransparencyBoard:
    def test_public_without_identity(self, client, seeded):
        res = client.get("/api/v1/public/transparency-board?year=2025")
        assert res.status_code == 200
        data = res.get_json()
        assert [c["campus_id"] for c in data["campuses"]] == ["main", "north"]
        main = data["campuses"][0]
        eng = next(u for u in main["units"] if u["unit_id"] == "eng")
        assert eng["statuses"]["main-eng-risk and opportunity action plan-first"] == "not-applicable"
        assert eng["statuses"]["main-eng-operational plan-first"] == "submitted"
        assert eng["statuses"]["main-eng-operational plan-final"] == "missing"

    def test_empty_year(self, client, seeded):
        data = client.get("/api/v1/public/transparency-board?year=2030").get_json()
        assert data["year"] == 2030
        assert data["available_years"] == [2025]


class TestHealth:
    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"
