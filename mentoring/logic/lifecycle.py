"""
Match Lifecycle

State machine for match records:

    pending_mentor_acceptance -> accepted
                              -> rejected       (mentor)     -> next preference
                              -> auto_rejected  (deadline)   -> next preference

Transitions out of pending use a compare-and-set UPDATE so that two concurrent
responses to the same match cannot both succeed. A partial unique index keeps
at most one active (pending or accepted) match per mentee and program.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.models_user import User
from . import notifier
from .aggregator import batch_aggregate, aggregate_scores
from .candidate_generator import (
    accepted_counts,
    active_match_for,
    build_mentee_candidate,
    generate_mentor_candidates,
    mentee_identity,
    previously_declined_mentors,
    build_mentor_candidate,
)
from .constants import (
    AUTO_REJECT_REASON,
    DEFAULT_REJECTION_REASON,
    MAX_MENTEES_PER_MENTOR,
    REQUIRED_PREFERENCES,
    MatchingStatus,
    MatchType,
    RegistrationStatus,
)
from .contracts import MatchScore, MenteeCandidate, MenteePreferencesRequest
from .deadlines import compute_auto_reject_at, deadline_passed
from .errors import MatchConflict, MatchingError, MatchNotFound, NotAssignedMentor
from .ranker import filter_available, select_best_match
from ..models import (
    AlumniProfile,
    MentoringProgram,
    MentorRegistration,
    MenteeRegistration,
    MentorMenteeMatching,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SELECTION
# =============================================================================

def find_best_match(
    db: Session,
    mentee: MenteeCandidate,
    program_id: str,
    tenant_id: str,
    excluded_mentor_ids: Iterable[str] = (),
) -> Optional[MatchScore]:
    """
    Score all approved mentors of the program and pick the one to propose.

    Args:
        db: Database session
        mentee: Mentee scoring input
        program_id: Mentoring program
        tenant_id: Tenant owning the program
        excluded_mentor_ids: Mentors that must not be proposed

    Returns:
        MatchScore of the chosen mentor, or None if nobody is available
    """
    mentors = generate_mentor_candidates(db, program_id, tenant_id)
    scores = batch_aggregate(mentee, mentors)
    counts = accepted_counts(db, program_id, tenant_id, [s.mentor_id for s in scores])
    available = filter_available(scores, excluded_mentor_ids, counts)
    return select_best_match(available, mentee.preferred_mentor_ids)


# =============================================================================
# CREATION
# =============================================================================

def create_match_request(
    db: Session,
    registration: MenteeRegistration,
    score: MatchScore,
    preferred_mentor_ids: List[str],
    now: Optional[datetime] = None,
) -> MentorMenteeMatching:
    """
    Insert a pending match request and email the mentor.

    Raises:
        MatchConflict: the mentee already holds an active match
    """
    now = now or datetime.utcnow()
    if active_match_for(db, registration.program_id, registration.tenant_id, registration.id):
        raise MatchConflict("Mentee already has an active match")

    match = MentorMenteeMatching(
        tenant_id=registration.tenant_id,
        program_id=registration.program_id,
        mentee_id=mentee_identity(db, registration),
        mentee_registration_id=registration.id,
        mentor_id=score.mentor_id,
        mentor_registration_id=score.mentor_registration_id,
        match_type=(MatchType.PREFERRED if score.is_in_preferred_list else MatchType.ALGORITHM).value,
        preferred_choice_order=score.preferred_order,
        match_score=score.total_score,
        industry_score=score.breakdown.industry_score,
        programme_score=score.breakdown.programme_score,
        skills_score=score.breakdown.skills_score,
        preference_score=score.breakdown.preference_score,
        status=MatchingStatus.PENDING.value,
        mentee_selected_mentors=list(preferred_mentor_ids),
        matched_at=now,
        auto_reject_at=compute_auto_reject_at(now),
    )
    try:
        with db.begin_nested():
            db.add(match)
            db.flush()
    except IntegrityError:
        raise MatchConflict("Mentee already has an active match")

    logger.info("Created %s match %s: mentee %s -> mentor %s (score %s)",
                match.match_type, match.id, registration.id, score.mentor_id, score.total_score)
    notifier.notify_mentor_of_request(db, match)
    return match


# =============================================================================
# MENTOR RESPONSES
# =============================================================================

def get_match(db: Session, match_id: str, tenant_id: Optional[str]) -> MentorMenteeMatching:
    match = db.get(MentorMenteeMatching, match_id)
    if not match or match.tenant_id != tenant_id:
        raise MatchNotFound()
    return match


def _check_respondable(match: MentorMenteeMatching, user_id: str, action: str, now: datetime) -> None:
    if match.mentor_id != user_id:
        raise NotAssignedMentor(action)
    if match.status != MatchingStatus.PENDING.value:
        raise MatchingError("Match is not in pending status")
    if deadline_passed(match.auto_reject_at, now):
        raise MatchingError("Match request has expired")


def _transition(
    db: Session,
    match: MentorMenteeMatching,
    new_status: MatchingStatus,
    now: datetime,
    reason: Optional[str] = None,
) -> bool:
    """Compare-and-set pending -> new_status. False if someone else won."""
    values = {"status": new_status.value, "mentor_response_at": now}
    if reason is not None:
        values["rejection_reason"] = reason
    result = db.execute(
        update(MentorMenteeMatching)
        .where(
            MentorMenteeMatching.id == match.id,
            MentorMenteeMatching.status == MatchingStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.refresh(match)
    return result.rowcount == 1


def accept_match(
    db: Session,
    match_id: str,
    user_id: str,
    tenant_id: Optional[str],
    now: Optional[datetime] = None,
) -> MentorMenteeMatching:
    """
    Mentor accepts a pending match.

    Raises:
        MatchNotFound, NotAssignedMentor, MatchingError (not pending, expired,
        capacity reached), MatchConflict (lost a concurrent update)
    """
    now = now or datetime.utcnow()
    match = get_match(db, match_id, tenant_id)
    _check_respondable(match, user_id, "accept", now)

    counts = accepted_counts(db, match.program_id, match.tenant_id, [match.mentor_id])
    if counts.get(match.mentor_id, 0) >= MAX_MENTEES_PER_MENTOR:
        raise MatchingError(
            f"Mentor has reached the maximum capacity of {MAX_MENTEES_PER_MENTOR} mentees per program"
        )

    if not _transition(db, match, MatchingStatus.ACCEPTED, now):
        raise MatchConflict()

    logger.info("Match %s accepted by mentor %s", match.id, user_id)
    notifier.notify_mentee_of_acceptance(db, match)
    return match


def reject_match(
    db: Session,
    match_id: str,
    user_id: str,
    tenant_id: Optional[str],
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[MentorMenteeMatching, Optional[MentorMenteeMatching]]:
    """
    Mentor rejects a pending match; the mentee moves on to the next preference.

    Returns:
        (rejected match, newly proposed match or None)
    """
    now = now or datetime.utcnow()
    match = get_match(db, match_id, tenant_id)
    _check_respondable(match, user_id, "reject", now)

    if not _transition(db, match, MatchingStatus.REJECTED, now, reason or DEFAULT_REJECTION_REASON):
        raise MatchConflict()

    logger.info("Match %s rejected by mentor %s", match.id, user_id)
    next_match = move_to_next_preference(db, match, now)
    return match, next_match


# =============================================================================
# RE-QUEUE
# =============================================================================

def move_to_next_preference(
    db: Session,
    closed_match: MentorMenteeMatching,
    now: Optional[datetime] = None,
) -> Optional[MentorMenteeMatching]:
    """
    Propose the next mentor after a rejection or auto-rejection.

    Every mentor who already declined this mentee is excluded. When nobody is
    left, program coordinators are asked to match manually.
    """
    program_id = closed_match.program_id
    tenant_id = closed_match.tenant_id
    reg_id = closed_match.mentee_registration_id

    if active_match_for(db, program_id, tenant_id, reg_id):
        return None

    registration = db.get(MenteeRegistration, reg_id)
    if not registration or registration.status != RegistrationStatus.APPROVED.value:
        logger.warning("Mentee registration %s not approved; not re-queueing", reg_id)
        return None

    preferred = [str(i) for i in (closed_match.mentee_selected_mentors or [])]
    excluded = set(previously_declined_mentors(db, program_id, tenant_id, reg_id))
    excluded.add(closed_match.mentor_id)

    mentee = build_mentee_candidate(db, registration, preferred)
    best = find_best_match(db, mentee, program_id, tenant_id, excluded)
    if best is None:
        notifier.notify_manual_matching_required(db, program_id, reg_id)
        return None

    try:
        return create_match_request(db, registration, best, preferred, now)
    except MatchingError as e:
        logger.warning("Could not re-queue mentee %s: %s", reg_id, e.message)
        return None


def expire_overdue_matches(db: Session, now: Optional[datetime] = None) -> int:
    """
    Auto-reject every pending match past its deadline and re-queue its mentee.

    Each match is handled in its own savepoint: a failure rolls back only that
    match's auto-rejection and re-queue, and the sweep moves on.

    Returns:
        Number of matches auto-rejected
    """
    now = now or datetime.utcnow()
    overdue = list(db.execute(
        select(MentorMenteeMatching)
        .where(
            MentorMenteeMatching.status == MatchingStatus.PENDING.value,
            MentorMenteeMatching.auto_reject_at < now,
        )
        .order_by(MentorMenteeMatching.auto_reject_at)
    ).scalars())

    expired = 0
    for match in overdue:
        match_id = match.id
        try:
            with db.begin_nested():
                if not _transition(db, match, MatchingStatus.AUTO_REJECTED, now, AUTO_REJECT_REASON):
                    continue
                move_to_next_preference(db, match, now)
        except Exception:
            logger.exception("Failed to auto-reject match %s; left pending", match_id)
            continue
        expired += 1

    if expired:
        logger.info("Auto-rejected %s expired matches", expired)
    return expired


# =============================================================================
# STAFF & MENTEE OPERATIONS
# =============================================================================

def get_program(db: Session, program_id: str, tenant_id: Optional[str]) -> MentoringProgram:
    program = db.get(MentoringProgram, program_id)
    if not program or program.tenant_id != tenant_id:
        raise MatchingError("Program not found", 404)
    return program


def _find_mentee_registration(db: Session, program_id: str, tenant_id: str, mentee_id: str) -> Optional[MenteeRegistration]:
    """mentee_id may be a registration id or a user id."""
    base = select(MenteeRegistration).where(
        MenteeRegistration.program_id == program_id,
        MenteeRegistration.tenant_id == tenant_id,
        MenteeRegistration.status == RegistrationStatus.APPROVED.value,
    )
    registration = db.execute(base.where(MenteeRegistration.id == mentee_id)).scalars().first()
    if registration:
        return registration
    user = db.get(User, mentee_id)
    if not user:
        return None
    return db.execute(
        base.where(
            (MenteeRegistration.user_id == user.id) | (MenteeRegistration.personal_email == user.email)
        )
    ).scalars().first()


def manual_match(
    db: Session,
    program_id: str,
    tenant_id: str,
    mentee_id: str,
    mentor_id: str,
    staff_user_id: str,
    now: Optional[datetime] = None,
) -> MentorMenteeMatching:
    """
    Staff assign a mentor directly; the match is created already accepted.
    """
    now = now or datetime.utcnow()
    get_program(db, program_id, tenant_id)

    registration = _find_mentee_registration(db, program_id, tenant_id, mentee_id)
    mentor_reg = db.execute(
        select(MentorRegistration).where(
            MentorRegistration.program_id == program_id,
            MentorRegistration.tenant_id == tenant_id,
            MentorRegistration.user_id == mentor_id,
            MentorRegistration.status == RegistrationStatus.APPROVED.value,
        )
    ).scalars().first()
    if not registration or not mentor_reg:
        raise MatchingError("Mentee or Mentor registration not found", 404)

    counts = accepted_counts(db, program_id, tenant_id, [mentor_id])
    if counts.get(mentor_id, 0) >= MAX_MENTEES_PER_MENTOR:
        raise MatchingError(
            f"Mentor has reached the maximum capacity of {MAX_MENTEES_PER_MENTOR} mentees per program"
        )
    if active_match_for(db, program_id, tenant_id, registration.id):
        raise MatchConflict("Mentee already has an active match")

    mentee = build_mentee_candidate(db, registration)
    profile = db.execute(
        select(AlumniProfile).where(AlumniProfile.user_id == mentor_id)
    ).scalar_one_or_none()
    score = aggregate_scores(mentee, build_mentor_candidate(mentor_reg, profile))

    match = MentorMenteeMatching(
        tenant_id=tenant_id,
        program_id=program_id,
        mentee_id=mentee_identity(db, registration),
        mentee_registration_id=registration.id,
        mentor_id=mentor_id,
        mentor_registration_id=mentor_reg.id,
        match_type=MatchType.MANUAL.value,
        preferred_choice_order=score.preferred_order,
        match_score=score.total_score,
        industry_score=score.breakdown.industry_score,
        programme_score=score.breakdown.programme_score,
        skills_score=score.breakdown.skills_score,
        preference_score=score.breakdown.preference_score,
        status=MatchingStatus.ACCEPTED.value,
        mentee_selected_mentors=list(mentee.preferred_mentor_ids),
        matched_at=now,
        mentor_response_at=now,
        matched_by=staff_user_id,
    )
    try:
        with db.begin_nested():
            db.add(match)
            db.flush()
    except IntegrityError:
        raise MatchConflict("Mentee already has an active match")

    logger.info("Manual match %s created by %s: mentee %s -> mentor %s",
                match.id, staff_user_id, registration.id, mentor_id)
    notifier.notify_manual_assignment(db, match)
    return match


def submit_preferences(
    db: Session,
    program_id: str,
    tenant_id: Optional[str],
    body: MenteePreferencesRequest,
    user: Optional[User] = None,
    now: Optional[datetime] = None,
) -> MenteeRegistration:
    """
    Store a mentee's ranked choice of exactly three approved mentors.
    """
    now = now or datetime.utcnow()
    ids = [str(i) for i in body.preferred_mentor_ids]
    if len(ids) != REQUIRED_PREFERENCES:
        raise MatchingError(f"Exactly {REQUIRED_PREFERENCES} preferred mentor IDs are required")
    if len(set(ids)) != REQUIRED_PREFERENCES:
        raise MatchingError("Cannot select the same mentor multiple times")

    program = get_program(db, program_id, tenant_id)
    if now > program.registration_end_date_mentee:
        raise MatchingError("Mentee registration deadline has passed")

    query = select(MenteeRegistration).where(
        MenteeRegistration.program_id == program_id,
        MenteeRegistration.tenant_id == tenant_id,
        MenteeRegistration.status == RegistrationStatus.APPROVED.value,
    )
    if body.validated_student_id:
        query = query.where(MenteeRegistration.validated_student_id == body.validated_student_id)
    elif body.token:
        query = query.where(MenteeRegistration.registration_token == body.token)
    elif user is not None:
        query = query.where(
            (MenteeRegistration.user_id == user.id) | (MenteeRegistration.personal_email == user.email)
        )
    else:
        raise MatchingError("Validated student ID or token is required")

    registration = db.execute(query).scalars().first()
    if not registration:
        raise MatchingError("Approved mentee registration not found for this program", 404)

    approved = db.execute(
        select(MentorRegistration.user_id).where(
            MentorRegistration.program_id == program_id,
            MentorRegistration.tenant_id == tenant_id,
            MentorRegistration.status == RegistrationStatus.APPROVED.value,
            MentorRegistration.user_id.in_(ids),
        )
    ).scalars().all()
    if len(set(approved)) != REQUIRED_PREFERENCES:
        raise MatchingError("All selected mentors must be approved for this program")

    registration.preferred_mentors = ids
    logger.info("Stored mentor preferences for mentee registration %s", registration.id)
    return registration


def find_registration_for_user(db: Session, program_id: str, tenant_id: Optional[str], user: User) -> MenteeRegistration:
    registration = db.execute(
        select(MenteeRegistration).where(
            MenteeRegistration.program_id == program_id,
            MenteeRegistration.tenant_id == tenant_id,
            MenteeRegistration.status == RegistrationStatus.APPROVED.value,
            (MenteeRegistration.user_id == user.id) | (MenteeRegistration.personal_email == user.email),
        )
    ).scalars().first()
    if not registration:
        raise MatchingError("Mentee registration not found", 404)
    return registration


__all__ = [
    "find_best_match",
    "create_match_request",
    "accept_match",
    "reject_match",
    "move_to_next_preference",
    "expire_overdue_matches",
    "manual_match",
    "submit_preferences",
]
