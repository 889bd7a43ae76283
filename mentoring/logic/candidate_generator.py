"""
Candidate Generator

Loads mentees and approved mentors of a program from the database and
flattens them (with alumni profile data) into scoring contracts.
"""

from typing import Dict, Iterable, List, Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.models_user import User
from .contracts import MenteeCandidate, MentorCandidate
from .constants import MatchingStatus, RegistrationStatus
from ..models import AlumniProfile, MentorRegistration, MenteeRegistration, MentorMenteeMatching


def resolve_mentee_user(db: Session, registration: MenteeRegistration) -> Optional[User]:
    """
    Find the platform user behind a mentee registration.

    Registrations made without an account only carry an email, so fall back
    to an email lookup.
    """
    if registration.user_id:
        user = db.get(User, registration.user_id)
        if user:
            return user
    if registration.personal_email:
        return db.execute(
            select(User).where(User.email == registration.personal_email.lower())
        ).scalar_one_or_none()
    return None


def mentee_identity(db: Session, registration: MenteeRegistration) -> str:
    """User id of the mentee, or the registration id when no account exists."""
    user = resolve_mentee_user(db, registration)
    return user.id if user else registration.id


def _profile_for(db: Session, user_id: Optional[str]) -> Optional[AlumniProfile]:
    if not user_id:
        return None
    return db.execute(
        select(AlumniProfile).where(AlumniProfile.user_id == user_id)
    ).scalar_one_or_none()


def build_mentee_candidate(
    db: Session,
    registration: MenteeRegistration,
    preferred_mentor_ids: Optional[List[str]] = None,
) -> MenteeCandidate:
    """
    Build the scoring input for a mentee registration.

    Args:
        db: Database session
        registration: Approved mentee registration
        preferred_mentor_ids: Overrides the registration's stored preferences

    Returns:
        MenteeCandidate
    """
    user = resolve_mentee_user(db, registration)
    profile = _profile_for(db, user.id if user else None)

    if preferred_mentor_ids is None:
        preferred_mentor_ids = [str(i) for i in (registration.preferred_mentors or [])]

    return MenteeCandidate(
        registration_id=registration.id,
        user_id=user.id if user else None,
        industry=profile.industry if profile else None,
        company=profile.current_company if profile else None,
        programme=(profile.program or profile.department) if profile else None,
        areas_of_mentoring=list(registration.areas_of_mentoring or []),
        preferred_mentor_ids=preferred_mentor_ids,
    )


def build_mentor_candidate(
    registration: MentorRegistration,
    profile: Optional[AlumniProfile],
) -> MentorCandidate:
    return MentorCandidate(
        mentor_id=registration.user_id,
        registration_id=registration.id,
        industry=profile.industry if profile else None,
        company=profile.current_company if profile else None,
        programme=(profile.program or profile.department) if profile else None,
        areas_of_mentoring=list(registration.areas_of_mentoring or []),
    )


def generate_mentor_candidates(db: Session, program_id: str, tenant_id: str) -> List[MentorCandidate]:
    """
    All approved mentors of a program, joined with their alumni profiles.

    Args:
        db: Database session
        program_id: Mentoring program
        tenant_id: Tenant that owns the program

    Returns:
        List of MentorCandidate objects ready for scoring
    """
    rows = db.execute(
        select(MentorRegistration, AlumniProfile)
        .outerjoin(AlumniProfile, AlumniProfile.user_id == MentorRegistration.user_id)
        .where(
            MentorRegistration.program_id == program_id,
            MentorRegistration.tenant_id == tenant_id,
            MentorRegistration.status == RegistrationStatus.APPROVED.value,
        )
        .order_by(MentorRegistration.id)
    ).all()
    return [build_mentor_candidate(reg, profile) for reg, profile in rows]


def accepted_counts(
    db: Session,
    program_id: str,
    tenant_id: str,
    mentor_ids: Optional[Iterable[str]] = None,
) -> Dict[str, int]:
    """mentor_id -> number of accepted matches in the program."""
    query = (
        select(MentorMenteeMatching.mentor_id, func.count())
        .where(
            MentorMenteeMatching.program_id == program_id,
            MentorMenteeMatching.tenant_id == tenant_id,
            MentorMenteeMatching.status == MatchingStatus.ACCEPTED.value,
        )
        .group_by(MentorMenteeMatching.mentor_id)
    )
    if mentor_ids is not None:
        query = query.where(MentorMenteeMatching.mentor_id.in_(list(mentor_ids)))
    return {mentor_id: count for mentor_id, count in db.execute(query).all()}


def approved_mentee_registrations(db: Session, program_id: str, tenant_id: str) -> List[MenteeRegistration]:
    return list(db.execute(
        select(MenteeRegistration)
        .where(
            MenteeRegistration.program_id == program_id,
            MenteeRegistration.tenant_id == tenant_id,
            MenteeRegistration.status == RegistrationStatus.APPROVED.value,
        )
        .order_by(MenteeRegistration.id)
    ).scalars())


def active_match_for(db: Session, program_id: str, tenant_id: str, mentee_registration_id: str) -> Optional[MentorMenteeMatching]:
    return db.execute(
        select(MentorMenteeMatching).where(
            MentorMenteeMatching.program_id == program_id,
            MentorMenteeMatching.tenant_id == tenant_id,
            MentorMenteeMatching.mentee_registration_id == mentee_registration_id,
            MentorMenteeMatching.status.in_([MatchingStatus.PENDING.value, MatchingStatus.ACCEPTED.value]),
        )
    ).scalars().first()


def previously_declined_mentors(db: Session, program_id: str, tenant_id: str, mentee_registration_id: str) -> List[str]:
    """Mentors who rejected this mentee or let a request to them expire."""
    return list(db.execute(
        select(MentorMenteeMatching.mentor_id).where(
            MentorMenteeMatching.program_id == program_id,
            MentorMenteeMatching.tenant_id == tenant_id,
            MentorMenteeMatching.mentee_registration_id == mentee_registration_id,
            MentorMenteeMatching.status.in_([
                MatchingStatus.REJECTED.value,
                MatchingStatus.AUTO_REJECTED.value,
                MatchingStatus.EXPIRED.value,
            ]),
        )
    ).scalars())
