"""
EOMS Compliance Portal
Tests — Submission API.

Covers:
    - identity header requirement
    - create / resubmit lifecycle and validation
    - supervisor decisions, reject-needs-comment, admin re-open
    - comments
    - carry-over endpoint and its refusal payload
"""

import pytest

from eoms_portal.services.report_catalog import (
    INTERESTED_PARTIES,
    OPERATIONAL_PLAN,
    RISK_REGISTRY,
    SWOT_ANALYSIS,
)


@pytest.fixture()
def member(identity_headers):
    return identity_headers("u-1", "unit_coordinator", unit_id="eng", campus_id="main", name="Ana Cruz")


@pytest.fixture()
def director(identity_headers):
    return identity_headers("dir-1", "campus_director", unit_id=None, campus_id="main", name="Dir Santos")


@pytest.fixture()
def admin(identity_headers):
    return identity_headers("admin-1", "admin", unit_id=None, campus_id=None)


def _submit(client, headers, report_type=OPERATIONAL_PLAN, **kw):
    payload = {
        "year": 2025,
        "cycle_id": "first",
        "report_type": report_type,
        "link": "https://drive.example.edu/op",
    }
    payload.update(kw)
    return client.post("/api/v1/submissions", json=payload, headers=headers)


class TestIdentity:
    def test_missing_identity_rejected(self, client, org):
        res = client.get("/api/v1/submissions")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_request_id_echoed(self, client, org, member):
        res = client.get("/api/v1/submissions", headers={**member, "X-Request-ID": "abc123"})
        assert res.status_code == 200
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers


class TestCreateSubmission:
    def test_create(self, client, org, member):
        res = _submit(client, member, comment="First upload")
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "submitted"
        assert data["unit_id"] == "eng"
        assert data["campus_id"] == "main"
        assert data["control_number"] == "EOMS-MC-COE-2025-OP-REV0"
        assert data["submitted_by_name"] == "Ana Cruz"
        assert [c["text"] for c in data["comments"]] == ["First upload"]

    def test_registry_requires_risk_rating(self, client, org, member):
        res = _submit(client, member, RISK_REGISTRY)
        assert res.status_code == 422
        assert "risk_rating" in res.get_json()["details"]
        assert _submit(client, member, RISK_REGISTRY, risk_rating="low").status_code == 201

    def test_risk_rating_only_on_registry(self, client, org, member):
        assert _submit(client, member, risk_rating="low").status_code == 422

    @pytest.mark.parametrize("override", [
        {"cycle_id": "second"},
        {"report_type": "annual_report"},
        {"link": "ftp://files.example.edu/op"},
        {"link": ""},
        {"year": "20x5"},
    ])
    def test_invalid_input(self, client, org, member, override):
        res = _submit(client, member, **override)
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_other_unit_forbidden(self, client, org, member):
        res = _submit(client, member, unit_id="lib", campus_id="north")
        assert res.status_code == 403

    def test_without_unit_forbidden(self, client, org, identity_headers):
        no_unit = identity_headers("u-9", "employee", unit_id=None, campus_id="main")
        assert _submit(client, no_unit).status_code == 403

    def test_unknown_unit_in_identity_rejected(self, client, org, identity_headers):
        ghost = identity_headers("u-9", "unit_coordinator", unit_id="ghost", campus_id="main")
        res = _submit(client, ghost)
        assert res.status_code == 422
        assert "unit_id" in res.get_json()["details"]

    def test_unit_not_on_campus_rejected(self, client, org, identity_headers):
        wrong_campus = identity_headers("u-1", "unit_coordinator", unit_id="eng", campus_id="north")
        res = _submit(client, wrong_campus)
        assert res.status_code == 422
        assert "campus_id" in res.get_json()["details"]

    def test_duplicate_while_pending_conflicts(self, client, org, member):
        assert _submit(client, member).status_code == 201
        res = _submit(client, member)
        assert res.status_code == 409

    def test_resubmission_after_rejection(self, client, org, member, director):
        sub = _submit(client, member).get_json()
        client.post(f"/api/v1/submissions/{sub['id']}/decision",
                    json={"decision": "reject", "comment": "Wrong template"}, headers=director)

        res = _submit(client, member, link="https://drive.example.edu/op-v2")
        assert res.status_code == 201
        assert res.get_json()["control_number"].endswith("-REV1")

        current = client.get("/api/v1/submissions?current=true", headers=member).get_json()
        assert current["total"] == 1
        assert current["items"][0]["link"] == "https://drive.example.edu/op-v2"

        history = client.get("/api/v1/submissions", headers=member).get_json()
        assert history["total"] == 2


class TestReview:
    def test_approve(self, client, org, member, director):
        sub = _submit(client, member).get_json()
        res = client.post(f"/api/v1/submissions/{sub['id']}/decision",
                          json={"decision": "approve"}, headers=director)
        assert res.status_code == 200
        assert res.get_json()["status"] == "approved"

    def test_reject_requires_comment(self, client, org, member, director):
        sub = _submit(client, member).get_json()
        res = client.post(f"/api/v1/submissions/{sub['id']}/decision",
                          json={"decision": "reject"}, headers=director)
        assert res.status_code == 422
        assert client.get(f"/api/v1/submissions/{sub['id']}", headers=member).get_json()["status"] == "submitted"

    def test_unit_member_cannot_review(self, client, org, member):
        sub = _submit(client, member).get_json()
        res = client.post(f"/api/v1/submissions/{sub['id']}/decision",
                          json={"decision": "approve"}, headers=member)
        assert res.status_code == 403

    def test_out_of_scope_reviewer_gets_404(self, client, org, member, identity_headers):
        sub = _submit(client, member).get_json()
        north_director = identity_headers("dir-2", "campus_director", unit_id=None, campus_id="north")
        res = client.post(f"/api/v1/submissions/{sub['id']}/decision",
                          json={"decision": "approve"}, headers=north_director)
        assert res.status_code == 404

    def test_decided_record_cannot_be_decided_again(self, client, org, member, director):
        sub = _submit(client, member).get_json()
        url = f"/api/v1/submissions/{sub['id']}/decision"
        client.post(url, json={"decision": "approve"}, headers=director)
        res = client.post(url, json={"decision": "reject", "comment": "Changed my mind"}, headers=director)
        assert res.status_code == 422

    def test_admin_reopen(self, client, org, member, director, admin):
        sub = _submit(client, member).get_json()
        client.post(f"/api/v1/submissions/{sub['id']}/decision", json={"decision": "approve"}, headers=director)

        assert client.post(f"/api/v1/submissions/{sub['id']}/reopen", headers=director).status_code == 403
        res = client.post(f"/api/v1/submissions/{sub['id']}/reopen",
                          json={"comment": "Signature missing"}, headers=admin)
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "submitted"
        assert data["comments"][-1]["text"] == "Signature missing"

    def test_comment(self, client, org, member, director):
        sub = _submit(client, member).get_json()
        res = client.post(f"/api/v1/submissions/{sub['id']}/comments",
                          json={"text": "Please attach annex B"}, headers=director)
        assert res.status_code == 201
        assert res.get_json()["author_role"] == "campus_director"
        fetched = client.get(f"/api/v1/submissions/{sub['id']}", headers=member).get_json()
        assert fetched["comments"][-1]["text"] == "Please attach annex B"

    def test_empty_comment_rejected(self, client, org, member):
        sub = _submit(client, member).get_json()
        res = client.post(f"/api/v1/submissions/{sub['id']}/comments", json={"text": "  "}, headers=member)
        assert res.status_code == 422


class TestCarryOverAPI:
    def test_carry_over(self, client, org, member, director):
        sub = _submit(client, member, INTERESTED_PARTIES, link="https://drive.example.edu/neip").get_json()
        client.post(f"/api/v1/submissions/{sub['id']}/decision", json={"decision": "approve"}, headers=director)

        res = client.post("/api/v1/units/eng/carry-over",
                          json={"report_type": INTERESTED_PARTIES, "year": 2025}, headers=member)
        assert res.status_code == 201
        data = res.get_json()
        assert data["cycle_id"] == "final"
        assert data["status"] == "submitted"
        assert len(data["comments"]) == 1

        again = client.post("/api/v1/units/eng/carry-over",
                            json={"report_type": INTERESTED_PARTIES, "year": 2025}, headers=member)
        assert again.status_code == 409
        body = again.get_json()
        assert body["code"] == "ERR_CARRY_OVER_REFUSED"
        assert body["details"]["reason"] == "final_cycle_submission_exists"

    def test_missing_report_type(self, client, org, member):
        res = client.post("/api/v1/units/eng/carry-over", json={}, headers=member)
        assert res.status_code == 400

    def test_no_first_cycle(self, client, org, member):
        res = client.post("/api/v1/units/eng/carry-over",
                          json={"report_type": SWOT_ANALYSIS, "year": 2025}, headers=member)
        assert res.status_code == 409
        assert res.get_json()["details"]["reason"] == "no_first_cycle_submission"

    def test_report_types_catalog(self, client, org, member):
        data = client.get("/api/v1/report-types", headers=member).get_json()
        assert data["version"] == "2025.1"
        eligible = [e["code"] for e in data["entries"] if e["carry_over_eligible"]]
        assert eligible == [INTERESTED_PARTIES, SWOT_ANALYSIS]
