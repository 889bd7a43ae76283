"""
Output Assembler

Turns match records into the JSON shapes returned by the matching API and
computes the listing/statistics views used by mentors, mentees and staff.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.models_user import User
from .candidate_generator import active_match_for, approved_mentee_registrations, resolve_mentee_user
from .constants import ACTIVE_STATUSES, MatchingStatus, MatchType
from .deadlines import get_days_remaining
from ..models import MentoringProgram, MenteeRegistration, MentorMenteeMatching


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _user_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    return {
        "_id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
    }


def _program_summary(program: Optional[MentoringProgram]) -> Optional[Dict[str, Any]]:
    if not program:
        return None
    return {"_id": program.id, "name": program.name, "category": program.category}


def _registration_summary(reg: Optional[MenteeRegistration]) -> Optional[Dict[str, Any]]:
    if not reg:
        return None
    return {
        "_id": reg.id,
        "firstName": reg.first_name,
        "lastName": reg.last_name,
        "personalEmail": reg.personal_email,
        "sitEmail": reg.sit_email,
        "mobileNumber": reg.mobile_number,
        "classOf": reg.class_of,
        "areasOfMentoring": reg.areas_of_mentoring or [],
        "preferredMailingAddress": reg.preferred_mailing_address,
        "dateOfBirth": reg.date_of_birth.isoformat() if reg.date_of_birth else None,
    }


def serialize_match(match: MentorMenteeMatching) -> Dict[str, Any]:
    """Flat representation of a match record."""
    return {
        "_id": match.id,
        "programId": match.program_id,
        "menteeId": match.mentee_id,
        "menteeRegistrationId": match.mentee_registration_id,
        "mentorId": match.mentor_id,
        "mentorRegistrationId": match.mentor_registration_id,
        "matchType": match.match_type,
        "preferredChoiceOrder": match.preferred_choice_order,
        "matchScore": match.match_score,
        "scoreBreakdown": match.score_breakdown,
        "status": match.status,
        "menteeSelectedMentors": match.mentee_selected_mentors or [],
        "matchedAt": _iso(match.matched_at),
        "autoRejectAt": _iso(match.auto_reject_at),
        "mentorResponseAt": _iso(match.mentor_response_at),
        "rejectionReason": match.rejection_reason,
        "matchedBy": match.matched_by,
    }


def serialize_request(db: Session, match: MentorMenteeMatching, now: Optional[datetime] = None) -> Dict[str, Any]:
    """A pending request as shown to its mentor."""
    reg = db.get(MenteeRegistration, match.mentee_registration_id)
    data = serialize_match(match)
    data.update({
        "programId": _program_summary(db.get(MentoringProgram, match.program_id)),
        "menteeId": _user_summary(db.get(User, match.mentee_id)) or match.mentee_id,
        "menteeRegistrationId": _registration_summary(reg),
        "daysRemaining": get_days_remaining(match.auto_reject_at, now),
    })
    return data


def serialize_my_mentee(db: Session, match: MentorMenteeMatching) -> Dict[str, Any]:
    """A mentor's mentee, denormalised for the mentee list view."""
    reg = db.get(MenteeRegistration, match.mentee_registration_id)
    user = db.get(User, match.mentee_id)
    program = db.get(MentoringProgram, match.program_id)

    first_name = (reg.first_name if reg else None) or (user.first_name if user else "")
    last_name = (reg.last_name if reg else None) or (user.last_name if user else "")
    email = (reg.contact_email if reg else None) or (user.email if user else "")

    return {
        "_id": match.id,
        "id": match.id,
        "menteeId": user.id if user else match.mentee_id,
        "firstName": first_name,
        "lastName": last_name,
        "name": f"{first_name} {last_name}".strip(),
        "email": email,
        "classOf": reg.class_of if reg else None,
        "mobileNumber": reg.mobile_number if reg else None,
        "areasOfMentoring": (reg.areas_of_mentoring or []) if reg else [],
        "programName": program.name if program else None,
        "programId": match.program_id,
        "matchScore": match.match_score,
        "scoreBreakdown": match.score_breakdown,
        "status": match.status,
        "matchType": match.match_type,
        "matchedAt": _iso(match.matched_at),
        "mentorResponseAt": _iso(match.mentor_response_at),
    }


# =============================================================================
# VIEWS
# =============================================================================

def list_my_requests(db: Session, mentor_id: str, tenant_id: Optional[str], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Pending requests addressed to a mentor, newest first."""
    matches = db.execute(
        select(MentorMenteeMatching)
        .where(
            MentorMenteeMatching.mentor_id == mentor_id,
            MentorMenteeMatching.tenant_id == tenant_id,
            MentorMenteeMatching.status == MatchingStatus.PENDING.value,
        )
        .order_by(MentorMenteeMatching.matched_at.desc())
    ).scalars().all()
    return [serialize_request(db, m, now) for m in matches]


def list_my_mentees(db: Session, program_id: str, mentor_id: str, tenant_id: Optional[str]) -> List[Dict[str, Any]]:
    matches = db.execute(
        select(MentorMenteeMatching)
        .where(
            MentorMenteeMatching.program_id == program_id,
            MentorMenteeMatching.mentor_id == mentor_id,
            MentorMenteeMatching.tenant_id == tenant_id,
            MentorMenteeMatching.status.in_(ACTIVE_STATUSES),
        )
        .order_by(MentorMenteeMatching.matched_at.desc())
    ).scalars().all()
    return [serialize_my_mentee(db, m) for m in matches]


def mentee_status(db: Session, registration: MenteeRegistration) -> Dict[str, Any]:
    """Match history of a mentee registration plus its current active match."""
    matches = db.execute(
        select(MentorMenteeMatching)
        .where(MentorMenteeMatching.mentee_registration_id == registration.id)
        .order_by(MentorMenteeMatching.matched_at.desc())
    ).scalars().all()
    current = active_match_for(db, registration.program_id, registration.tenant_id, registration.id)

    result = []
    for m in matches:
        data = serialize_match(m)
        data["mentorId"] = _user_summary(db.get(User, m.mentor_id)) or m.mentor_id
        result.append(data)
    return {
        "registrationId": registration.id,
        "preferredMentors": registration.preferred_mentors or [],
        "matches": result,
        "currentMatch": serialize_match(current) if current else None,
    }


def list_unmatched(db: Session, program_id: str, tenant_id: str) -> List[Dict[str, Any]]:
    """Approved mentees without a pending or accepted match."""
    unmatched = []
    for reg in approved_mentee_registrations(db, program_id, tenant_id):
        if active_match_for(db, program_id, tenant_id, reg.id):
            continue
        data = _registration_summary(reg)
        user = resolve_mentee_user(db, reg)
        data["userId"] = user.id if user else None
        data["preferredMentors"] = reg.preferred_mentors or []
        unmatched.append(data)
    return unmatched


def list_program_matches(db: Session, program_id: str, tenant_id: str) -> List[Dict[str, Any]]:
    matches = db.execute(
        select(MentorMenteeMatching)
        .where(
            MentorMenteeMatching.program_id == program_id,
            MentorMenteeMatching.tenant_id == tenant_id,
        )
        .order_by(MentorMenteeMatching.matched_at.desc())
    ).scalars().all()

    result = []
    for m in matches:
        data = serialize_match(m)
        data["mentorId"] = _user_summary(db.get(User, m.mentor_id)) or m.mentor_id
        data["menteeId"] = _user_summary(db.get(User, m.mentee_id)) or m.mentee_id
        result.append(data)
    return result


def matching_statistics(db: Session, program_id: str, tenant_id: str) -> Dict[str, Any]:
    """Counts per status and type, matched/unmatched mentees and average score."""
    matches = db.execute(
        select(MentorMenteeMatching).where(
            MentorMenteeMatching.program_id == program_id,
            MentorMenteeMatching.tenant_id == tenant_id,
        )
    ).scalars().all()

    by_status = {status.value: 0 for status in MatchingStatus}
    by_type = {match_type.value: 0 for match_type in MatchType}
    for m in matches:
        by_status[m.status] = by_status.get(m.status, 0) + 1
        by_type[m.match_type] = by_type.get(m.match_type, 0) + 1

    registrations = approved_mentee_registrations(db, program_id, tenant_id)
    matched_ids = {m.mentee_registration_id for m in matches if m.status == MatchingStatus.ACCEPTED.value}
    pending_ids = {m.mentee_registration_id for m in matches if m.status == MatchingStatus.PENDING.value}
    scores = [m.match_score for m in matches if m.match_score is not None]

    return {
        "totalMatches": len(matches),
        "byStatus": by_status,
        "byType": by_type,
        "totalMentees": len(registrations),
        "matchedMentees": len(matched_ids),
        "pendingMentees": len(pending_ids),
        "unmatchedMentees": len([r for r in registrations if r.id not in matched_ids and r.id not in pending_ids]),
        "averageScore": round(sum(scores) / len(scores), 1) if scores else 0,
    }
