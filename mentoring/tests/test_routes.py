"""
API tests for the matching routes, auth endpoints and error envelope.
"""

import pytest
from fastapi.testclient import TestClient

import db as db_module
from conftest import TENANT, auth_header
from main import app
from mentoring.logic.constants import MatchingStatus
from mentoring.models import MentorMenteeMatching
from utils.auth_utils import hash_password
from utils.crud_user import create_user

BASE = "/api/v1/matching"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seeded(session, factory):
    """Program ready for matching; returns plain ids so no ORM state leaks across requests."""
    staff = factory.user(role="coordinator")
    program = factory.program(coordinators=[staff.id])
    m1 = factory.mentor(program, areas=["Networking"], industry="Finance")
    m2 = factory.mentor(program, areas=["Leadership"])
    m3 = factory.mentor(program)
    mentee = factory.user(role="student", industry="Finance")
    reg = factory.mentee(program, preferred=[m2.id, m1.id, m3.id], user=mentee, registration_token="tok-9")
    data = {
        "program_id": program.id,
        "reg_id": reg.id,
        "m1": m1.id, "m2": m2.id, "m3": m3.id,
        "staff_h": auth_header(staff),
        "m1_h": auth_header(m1),
        "m2_h": auth_header(m2),
        "mentee_h": auth_header(mentee),
    }
    session.commit()
    session.close()
    return data


def _initiate(client, seeded):
    res = client.post(f"{BASE}/{seeded['program_id']}/initiate", headers=seeded["staff_h"])
    assert res.status_code == 200, res.text
    return res.json()


def _match_status(match_id):
    with db_module.get_db() as db:
        return db.get(MentorMenteeMatching, match_id).status


# =============================================================================
# AUTH & META
# =============================================================================

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_and_me(client, session):
    create_user(session, email="Alex@example.com", first_name="Alex", last_name="Lee",
                role="alumni", password_hash=hash_password("s3cret!"), tenant_id=TENANT)
    session.commit()
    session.close()

    res = client.post("/auth/login", json={"email": "Alex@example.com", "password": "s3cret!"})
    assert res.status_code == 200
    token = res.json()["access_token"]

    me = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "alex@example.com"
    assert me.json()["tenant_id"] == TENANT


def test_login_wrong_password(client, session):
    create_user(session, email="sam@example.com", first_name="Sam", last_name=None,
                role="alumni", password_hash=hash_password("right"))
    session.commit()
    session.close()

    res = client.post("/auth/login", json={"email": "sam@example.com", "password": "wrong"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials"}


def test_missing_token(client):
    res = client.get(f"{BASE}/my-requests")
    assert res.status_code == 401
    assert res.json()["success"] is False


# =============================================================================
# STAFF
# =============================================================================

def test_initiate_creates_pending_requests(client, seeded):
    body = _initiate(client, seeded)

    assert body["success"] is True
    assert body["message"] == "Matching process initiated successfully"
    assert body["data"] == {"total_mentees": 1, "matched": 0, "pending": 1, "needs_manual": 0, "errors": 0}


def test_staff_endpoints_require_staff_role(client, seeded):
    res = client.post(f"{BASE}/{seeded['program_id']}/initiate", headers=seeded["m1_h"])
    assert res.status_code == 403
    assert res.json() == {"success": False, "message": "Insufficient permissions"}


def test_unknown_program(client, seeded):
    res = client.get(f"{BASE}/missing/statistics", headers=seeded["staff_h"])
    assert res.status_code == 200
    assert res.json()["data"]["totalMatches"] == 0

    res = client.post(f"{BASE}/missing/initiate", headers=seeded["staff_h"])
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Program not found"}


def test_statistics_unmatched_and_matches(client, seeded):
    program_id = seeded["program_id"]
    unmatched = client.get(f"{BASE}/{program_id}/unmatched", headers=seeded["staff_h"]).json()["data"]
    assert [u["_id"] for u in unmatched] == [seeded["reg_id"]]

    _initiate(client, seeded)

    stats = client.get(f"{BASE}/{program_id}/statistics", headers=seeded["staff_h"]).json()["data"]
    assert stats["totalMatches"] == 1
    assert stats["byStatus"][MatchingStatus.PENDING.value] == 1
    assert stats["byType"]["preferred"] == 1
    assert stats["pendingMentees"] == 1
    assert stats["unmatchedMentees"] == 0

    matches = client.get(f"{BASE}/{program_id}/matches", headers=seeded["staff_h"]).json()["data"]
    assert len(matches) == 1
    assert matches[0]["mentorId"]["_id"] == seeded["m2"]

    assert client.get(f"{BASE}/{program_id}/unmatched", headers=seeded["staff_h"]).json()["data"] == []


def test_manual_match_route(client, seeded):
    res = client.post(
        f"{BASE}/{seeded['program_id']}/manual",
        json={"menteeId": seeded["reg_id"], "mentorId": seeded["m3"]},
        headers=seeded["staff_h"],
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["status"] == "accepted"
    assert data["matchType"] == "manual"

    again = client.post(
        f"{BASE}/{seeded['program_id']}/manual",
        json={"menteeId": seeded["reg_id"], "mentorId": seeded["m1"]},
        headers=seeded["staff_h"],
    )
    assert again.status_code == 409


def test_send_mentee_selection_emails_route(client, seeded, sent_emails):
    res = client.post(f"{BASE}/{seeded['program_id']}/send-mentee-selection-emails", headers=seeded["staff_h"])

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "All 1 mentor selection emails sent successfully"
    assert body["data"]["emailsSent"] == 1
    assert len(sent_emails) == 1


# =============================================================================
# MENTOR
# =============================================================================

def test_my_requests_lists_pending_with_days_remaining(client, seeded):
    _initiate(client, seeded)

    res = client.get(f"{BASE}/my-requests", headers=seeded["m2_h"])
    assert res.status_code == 200
    requests = res.json()["data"]["matches"]
    assert len(requests) == 1
    assert requests[0]["daysRemaining"] == 3
    assert requests[0]["menteeRegistrationId"]["_id"] == seeded["reg_id"]
    assert requests[0]["scoreBreakdown"]["preferenceScore"] == 100

    assert client.get(f"{BASE}/my-requests", headers=seeded["m1_h"]).json()["data"]["matches"] == []


def test_accept_route(client, seeded):
    _initiate(client, seeded)
    match_id = client.get(f"{BASE}/my-requests", headers=seeded["m2_h"]).json()["data"]["matches"][0]["_id"]

    res = client.put(f"{BASE}/{match_id}/accept", headers=seeded["m2_h"])

    assert res.status_code == 200
    assert res.json()["data"]["status"] == "accepted"
    assert client.get(f"{BASE}/my-requests", headers=seeded["m2_h"]).json()["data"]["matches"] == []
    mentees = client.get(f"{BASE}/{seeded['program_id']}/my-mentees", headers=seeded["m2_h"]).json()["data"]["mentees"]
    assert [m["_id"] for m in mentees] == [match_id]


def test_accept_by_wrong_mentor(client, seeded):
    _initiate(client, seeded)
    match_id = client.get(f"{BASE}/my-requests", headers=seeded["m2_h"]).json()["data"]["matches"][0]["_id"]

    res = client.put(f"{BASE}/{match_id}/accept", headers=seeded["m1_h"])

    assert res.status_code == 403
    assert res.json() == {"success": False, "message": "Only the assigned mentor can accept this match"}
    assert _match_status(match_id) == MatchingStatus.PENDING.value


def test_accept_unknown_match(client, seeded):
    res = client.put(f"{BASE}/does-not-exist/accept", headers=seeded["m2_h"])
    assert res.status_code == 404
    assert res.json()["message"] == "Match not found"


def test_reject_route_requeues(client, seeded):
    _initiate(client, seeded)
    match_id = client.get(f"{BASE}/my-requests", headers=seeded["m2_h"]).json()["data"]["matches"][0]["_id"]

    res = client.put(f"{BASE}/{match_id}/reject", headers=seeded["m2_h"])

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["match"]["rejectionReason"] == "No reason provided"
    assert data["nextMatch"]["mentorId"] == seeded["m1"]
    assert len(client.get(f"{BASE}/my-requests", headers=seeded["m1_h"]).json()["data"]["matches"]) == 1


def test_reject_route_with_reason(client, seeded):
    _initiate(client, seeded)
    match_id = client.get(f"{BASE}/my-requests", headers=seeded["m2_h"]).json()["data"]["matches"][0]["_id"]

    res = client.put(f"{BASE}/{match_id}/reject", json={"reason": "Travelling"}, headers=seeded["m2_h"])

    assert res.json()["data"]["match"]["rejectionReason"] == "Travelling"


# =============================================================================
# MENTEE
# =============================================================================

def test_mentee_status(client, seeded):
    _initiate(client, seeded)

    res = client.get(f"{BASE}/{seeded['program_id']}/status", headers=seeded["mentee_h"])

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["registrationId"] == seeded["reg_id"]
    assert data["currentMatch"]["mentorId"] == seeded["m2"]
    assert len(data["matches"]) == 1


def test_submit_preferences_closed(client, seeded):
    res = client.post(
        f"{BASE}/{seeded['program_id']}/submit-preferences",
        json={"preferredMentorIds": [seeded["m1"], seeded["m2"], seeded["m3"]]},
        headers=seeded["mentee_h"],
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Mentee registration deadline has passed"


def test_submit_preferences_anonymous_with_token(client, session, factory):
    program = factory.program(open_for_matching=False)
    mentors = [factory.mentor(program).id for _ in range(3)]
    reg_id = factory.mentee(program, registration_token="tok-anon").id
    program_id = program.id
    session.commit()
    session.close()

    res = client.post(
        f"{BASE}/{program_id}/submit-preferences",
        params={"tenant_id": TENANT},
        json={"preferredMentorIds": mentors, "token": "tok-anon"},
    )

    assert res.status_code == 200, res.text
    assert res.json()["data"] == {"registrationId": reg_id, "preferredMentors": mentors}
