"""
Mentor Matching API Routes

Exposes the match request lifecycle via REST API under /api/v1/matching.
Every response uses the envelope {"success": bool, "message": str, "data": ...}.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from db import get_db
from models.schemas_user import UserOut
from utils.auth_deps import auth_user, optional_auth_user, require_staff
from .export import export_program_matches
from .logic import lifecycle, output_assembler, runner
from .logic.contracts import ManualMatchRequest, MenteePreferencesRequest, RejectMatchRequest
from .logic.output_assembler import serialize_match


router = APIRouter(prefix="/api/v1/matching", tags=["matching"])


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


# =============================================================================
# MENTOR ENDPOINTS
# =============================================================================

@router.get("/my-requests", summary="Pending match requests for the current mentor")
def my_requests(
    current: UserOut = Depends(auth_user),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        requests = output_assembler.list_my_requests(db, current.id, current.tenant_id)
        return envelope({"matches": requests})


@router.put("/{match_id}/accept", summary="Accept a match request")
def accept_match(
    match_id: str,
    current: UserOut = Depends(auth_user),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        match = lifecycle.accept_match(db, match_id, current.id, current.tenant_id)
        return envelope(serialize_match(match), "Match accepted successfully")


@router.put("/{match_id}/reject", summary="Reject a match request")
def reject_match(
    match_id: str,
    payload: Optional[RejectMatchRequest] = Body(default=None),
    current: UserOut = Depends(auth_user),
    db_session=Depends(get_db),
):
    """
    Reject a pending match. The mentee is immediately offered to the next
    available mentor, or flagged for manual matching.
    """
    reason = payload.reason if payload else None
    db: Session
    with db_session as db:
        match, next_match = lifecycle.reject_match(db, match_id, current.id, current.tenant_id, reason)
        return envelope(
            {
                "match": serialize_match(match),
                "nextMatch": serialize_match(next_match) if next_match else None,
            },
            "Match rejected successfully",
        )


@router.get("/{program_id}/my-mentees", summary="Mentees of the current mentor in a program")
def my_mentees(
    program_id: str,
    current: UserOut = Depends(auth_user),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        mentees = output_assembler.list_my_mentees(db, program_id, current.id, current.tenant_id)
        return envelope({"mentees": mentees})


# =============================================================================
# MENTEE ENDPOINTS
# =============================================================================

@router.post("/{program_id}/submit-preferences", summary="Submit preferred mentors")
def submit_preferences(
    program_id: str,
    payload: MenteePreferencesRequest,
    tenant_id: Optional[str] = None,
    current: Optional[UserOut] = Depends(optional_auth_user),
    db_session=Depends(get_db),
):
    """
    Store three ranked mentor choices. Works for signed-in mentees or with the
    registration token / validated student id from the selection email
    (anonymous callers pass `tenant_id` as a query parameter).
    """
    db: Session
    with db_session as db:
        registration = lifecycle.submit_preferences(
            db, program_id, current.tenant_id if current else tenant_id, payload, current
        )
        return envelope(
            {"registrationId": registration.id, "preferredMentors": registration.preferred_mentors},
            "Preferences submitted successfully",
        )


@router.get("/{program_id}/status", summary="Matching status of the current mentee")
def mentee_status(
    program_id: str,
    current: UserOut = Depends(auth_user),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        registration = lifecycle.find_registration_for_user(db, program_id, current.tenant_id, current)
        return envelope(output_assembler.mentee_status(db, registration))


# =============================================================================
# STAFF ENDPOINTS
# =============================================================================

@router.post("/{program_id}/initiate", summary="Run matching for all approved mentees")
def initiate_matching(
    program_id: str,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        result = runner.initiate_matching(db, program_id, current.tenant_id)
        return envelope(result.model_dump(), "Matching process initiated successfully")


@router.post("/{program_id}/manual", summary="Manually assign a mentor")
def manual_match(
    program_id: str,
    payload: ManualMatchRequest,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        match = lifecycle.manual_match(
            db, program_id, current.tenant_id, payload.mentee_id, payload.mentor_id, current.id
        )
        return envelope(serialize_match(match), "Manual match created successfully")


@router.get("/{program_id}/unmatched", summary="Approved mentees without an active match")
def unmatched_mentees(
    program_id: str,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        return envelope(output_assembler.list_unmatched(db, program_id, current.tenant_id))


@router.get("/{program_id}/statistics", summary="Matching statistics for a program")
def matching_statistics(
    program_id: str,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        return envelope(output_assembler.matching_statistics(db, program_id, current.tenant_id))


@router.get("/{program_id}/matches", summary="All matches of a program")
def all_matches(
    program_id: str,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        return envelope(output_assembler.list_program_matches(db, program_id, current.tenant_id))


@router.post("/{program_id}/send-mentee-selection-emails", summary="Email mentees their mentor selection link")
def selection_emails(
    program_id: str,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        result = runner.send_selection_emails(db, program_id, current.tenant_id)
        if result["emailsFailed"]:
            message = (f"Mentor selection emails sent: {result['emailsSent']} successful, "
                       f"{result['emailsFailed']} failed")
            return {"success": False, "message": message, "data": result}
        return envelope(result, f"All {result['emailsSent']} mentor selection emails sent successfully")


@router.post("/{program_id}/export", summary="Export program matches to Google Sheets")
def export_matches(
    program_id: str,
    current: UserOut = Depends(require_staff),
    db_session=Depends(get_db),
):
    db: Session
    with db_session as db:
        lifecycle.get_program(db, program_id, current.tenant_id)
        return envelope(export_program_matches(db, program_id, current.tenant_id), "Matches exported to Google Sheet")
