"""
Matching Runner

Orchestrates program-wide operations:
1. Validates the program's matching window
2. Proposes a mentor to every approved mentee without an active match
3. Sends mentor selection emails to approved mentees

Scoring and state transitions live in aggregator/ranker/lifecycle.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.models_user import User
from utils import email_service
from .candidate_generator import active_match_for, approved_mentee_registrations, build_mentee_candidate
from .constants import FRONTEND_URL, ProgramStatus, RegistrationStatus
from .contracts import MatchingRunResult
from .errors import MatchingError
from .lifecycle import create_match_request, find_best_match, get_program
from . import notifier
from ..models import MentoringProgram, MentorRegistration

logger = logging.getLogger(__name__)


def validate_matching_window(program: MentoringProgram, now: Optional[datetime] = None) -> None:
    """Matching may start once both registrations closed and before matching ends."""
    now = now or datetime.utcnow()
    if now < program.registration_end_date_mentee or now < program.registration_end_date_mentor:
        raise MatchingError("Cannot initiate matching before registration end dates")
    if now > program.matching_end_date:
        raise MatchingError("Matching end date has passed")


def run_matching(
    db: Session,
    program_id: str,
    tenant_id: str,
    now: Optional[datetime] = None,
) -> MatchingRunResult:
    """
    Propose a mentor to every approved mentee of the program.

    Mentees that already hold an active match are skipped. A mentee for whom
    no mentor is available is counted as needing manual matching.

    Args:
        db: Database session
        program_id: Mentoring program
        tenant_id: Tenant owning the program
        now: Override for the current time

    Returns:
        MatchingRunResult with per-outcome counts
    """
    registrations = approved_mentee_registrations(db, program_id, tenant_id)
    result = MatchingRunResult(total_mentees=len(registrations))

    logger.info(f"🚀 Starting matching run for program {program_id}")
    logger.info(f"👥 Approved mentees: {len(registrations)}")

    for registration in registrations:
        if active_match_for(db, program_id, tenant_id, registration.id):
            continue
        try:
            mentee = build_mentee_candidate(db, registration)
            best = find_best_match(db, mentee, program_id, tenant_id)
            if best is None:
                result.needs_manual += 1
                notifier.notify_manual_matching_required(db, program_id, registration.id)
                continue
            create_match_request(db, registration, best, mentee.preferred_mentor_ids, now)
            result.pending += 1
        except MatchingError as e:
            logger.warning(f"⚠️ Could not match mentee {registration.id}: {e.message}")
            result.errors += 1
        except Exception:
            logger.exception(f"Failed to match mentee {registration.id}")
            result.errors += 1

    logger.info(f"📊 Pending requests created: {result.pending}")
    logger.info(f"❓ Needs manual matching: {result.needs_manual}")
    logger.info(f"❌ Errors: {result.errors}")
    logger.info(f"✅ Matching run complete for program {program_id}")
    return result


def initiate_matching(
    db: Session,
    program_id: str,
    tenant_id: Optional[str],
    now: Optional[datetime] = None,
) -> MatchingRunResult:
    if not tenant_id:
        raise MatchingError("Tenant ID is required")
    program = get_program(db, program_id, tenant_id)
    validate_matching_window(program, now)
    return run_matching(db, program_id, tenant_id, now)


# =============================================================================
# MENTOR SELECTION EMAILS
# =============================================================================

SELECTION_SUBJECT = "Select Your Preferred Mentors - {{programName}}"

SELECTION_TEMPLATE = """
    <h2>Welcome to Mentor Selection - {{programName}}</h2>
    <p>Dear {{menteeName}},</p>
    <p>Congratulations! Your registration for the <strong>{{programName}}</strong> mentoring program has been approved.</p>
    <p>Now it's time to select your 3 preferred mentors from our pool of approved mentors.</p>
    <h3>What You Need to Do:</h3>
    <ol>
      <li>Click on the link below to access the mentor selection page</li>
      <li>Browse through the list of {{approvedMentorsCount}} approved mentors</li>
      <li>Select your top 3 preferred mentors in order of preference</li>
      <li>Submit your selection</li>
    </ol>
    <p><strong>Important:</strong> Please complete your mentor selection by <strong>{{matchingEndDate}}</strong>.</p>
    <p><a href="{{mentorSelectionLink}}">Select My Mentors</a></p>
    <p>If you have any questions, please contact the program coordinators: <strong>{{coordinatorName}}</strong></p>
    <p>Best regards,<br>AlumniAccel Team</p>
"""


def _selection_recipients(db: Session, program: MentoringProgram, registrations) -> list:
    coordinators = [db.get(User, cid) for cid in (program.coordinators or [])]
    coordinator_names = ", ".join(c.full_name for c in coordinators if c)
    manager = db.get(User, program.manager_id) if program.manager_id else None
    approved_mentors = db.execute(
        select(func.count()).select_from(MentorRegistration).where(
            MentorRegistration.program_id == program.id,
            MentorRegistration.tenant_id == program.tenant_id,
            MentorRegistration.status == RegistrationStatus.APPROVED.value,
        )
    ).scalar_one()

    recipients = []
    for reg in registrations:
        email = reg.contact_email
        if not email or "@" not in email:
            logger.warning("Skipping mentee %s %s - no valid email address", reg.first_name, reg.last_name)
            continue
        link = (
            f"{FRONTEND_URL}/mentee-mentor-selection?programId={program.id}"
            f"&token={reg.registration_token or ''}&validatedStudentId={reg.validated_student_id or ''}"
        )
        recipients.append({
            "email": email.strip().lower(),
            "data": {
                "programName": program.name,
                "programCategory": program.category,
                "menteeName": f"{reg.first_name or ''} {reg.last_name or ''}".strip(),
                "firstName": reg.first_name,
                "lastName": reg.last_name,
                "classOf": reg.class_of,
                "studentID": reg.validated_student_id,
                "mentorSelectionLink": link,
                "coordinatorName": coordinator_names,
                "programManagerName": manager.full_name if manager else "",
                "matchingEndDate": program.matching_end_date.strftime("%b %d, %Y"),
                "approvedMentorsCount": approved_mentors,
            },
        })
    return recipients


def send_selection_emails(db: Session, program_id: str, tenant_id: Optional[str]) -> Dict[str, Any]:
    """
    Email every approved mentee a link to pick their preferred mentors.

    The program is flagged once every email went out.
    """
    program = get_program(db, program_id, tenant_id)
    if program.status != ProgramStatus.PUBLISHED.value:
        raise MatchingError("Cannot send selection emails for non-published programs")

    registrations = approved_mentee_registrations(db, program_id, tenant_id)
    if not registrations:
        raise MatchingError("No approved mentees found for this program")

    recipients = _selection_recipients(db, program, registrations)
    if not recipients:
        raise MatchingError("No mentees with valid email addresses found")

    result = email_service.send_batch(recipients, SELECTION_SUBJECT, SELECTION_TEMPLATE)
    logger.info("Mentee selection emails for program %s: %s sent, %s failed out of %s",
                program_id, result["success"], result["failed"], len(recipients))

    if result["success"] and result["failed"] == 0:
        program.mentee_selection_emails_sent = True

    return {
        "programId": program.id,
        "programName": program.name,
        "totalMentees": len(registrations),
        "validEmails": len(recipients),
        "emailsSent": result["success"],
        "emailsFailed": result["failed"],
        "results": result["results"],
    }


def auto_send_selection_emails(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Send selection emails for every published program whose registrations
    closed and whose mentees have not been emailed yet.

    Programs without approved mentees, or whose matching process start date
    lies in the future, are skipped. Each program runs in its own savepoint
    so one failure leaves the others in place.

    Returns:
        {"programsProcessed", "emailsSent", "errors"}
    """
    now = now or datetime.utcnow()
    programs = db.execute(
        select(MentoringProgram).where(
            MentoringProgram.status == ProgramStatus.PUBLISHED.value,
            MentoringProgram.mentee_selection_emails_sent.is_(False),
            MentoringProgram.registration_end_date_mentee <= now,
            MentoringProgram.registration_end_date_mentor <= now,
        )
    ).scalars().all()

    summary = {"programsProcessed": 0, "emailsSent": 0, "errors": 0}
    for program in programs:
        if not approved_mentee_registrations(db, program.id, program.tenant_id):
            logger.info(f"Skipping program {program.name} ({program.id}): no approved mentees")
            continue
        if program.matching_process_start_date and program.matching_process_start_date > now:
            logger.info(f"Skipping program {program.name} ({program.id}): matching process start date not reached")
            continue
        try:
            with db.begin_nested():
                result = send_selection_emails(db, program.id, program.tenant_id)
        except MatchingError as e:
            logger.warning(f"⚠️ Auto-send skipped for program {program.id}: {e.message}")
            summary["errors"] += 1
            continue
        except Exception:
            logger.exception(f"Failed to auto-send selection emails for program {program.id}")
            summary["errors"] += 1
            continue

        summary["programsProcessed"] += 1
        summary["emailsSent"] += result["emailsSent"]
        summary["errors"] += result["emailsFailed"]
        logger.info(f"📧 Auto-sent selection emails for {program.name} ({program.id}): "
                    f"{result['emailsSent']} sent, {result['emailsFailed']} failed")

    if summary["programsProcessed"]:
        logger.info(f"✅ Auto-send complete: {summary}")
    return summary
