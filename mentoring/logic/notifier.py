"""
Match notifications

Emails sent on lifecycle transitions. Sending never raises: a failed email is
logged and the transition that triggered it still stands.
"""

import logging
from html import escape
from typing import Optional
from sqlalchemy.orm import Session

from models.models_user import User
from utils import email_service
from .constants import AUTO_REJECT_DAYS, FRONTEND_URL
from ..models import MentoringProgram, MenteeRegistration, MentorMenteeMatching

logger = logging.getLogger(__name__)

SIGNATURE = "<p>Best regards,<br>AlumniAccel Team</p>"


def _program_name(program: Optional[MentoringProgram]) -> str:
    return program.name if program and program.name else "Mentoring Program"


def _esc(value) -> str:
    return "" if value is None else escape(str(value))


def _send(to_email: Optional[str], subject: str, html: str) -> bool:
    if not to_email:
        logger.warning("No recipient for '%s'; skipping", subject)
        return False
    try:
        return email_service.send_email(to_email, subject, html)
    except Exception:
        logger.exception("Failed to send '%s' to %s", subject, to_email)
        return False


def notify_mentor_of_request(db: Session, match: MentorMenteeMatching) -> bool:
    """Tell the mentor a mentee has been proposed, with the score breakdown."""
    mentor = db.get(User, match.mentor_id)
    program = db.get(MentoringProgram, match.program_id)
    reg = db.get(MenteeRegistration, match.mentee_registration_id)
    if not mentor:
        logger.error("Mentor %s not found for match %s", match.mentor_id, match.id)
        return False

    areas = ""
    if reg and reg.areas_of_mentoring:
        areas = f"<li>Areas of Interest: {_esc(', '.join(reg.areas_of_mentoring))}</li>"
    accept_link = f"{FRONTEND_URL}/mentor-match-requests?matchId={match.id}"

    html = f"""
        <h2>New Mentee Match Request</h2>
        <p>Dear {_esc(mentor.full_name)},</p>
        <p>You have been matched with a mentee for the <strong>{_esc(_program_name(program))}</strong> program.</p>
        <p><strong>Mentee Details:</strong></p>
        <ul>
          <li>Name: {_esc(reg.first_name if reg else '')} {_esc(reg.last_name if reg else '')}</li>
          <li>Email: {_esc(reg.personal_email if reg else '')}</li>
          <li>Class Of: {_esc(reg.class_of if reg and reg.class_of else '')}</li>
          {areas}
        </ul>
        <p><strong>Match Score:</strong> {match.match_score}%</p>
        <p><strong>Score Breakdown:</strong></p>
        <ul>
          <li>Industry Match: {match.industry_score}%</li>
          <li>Programme Match: {match.programme_score}%</li>
          <li>Skills Match: {match.skills_score}%</li>
          <li>Preference Match: {match.preference_score}%</li>
        </ul>
        <p>Please review and respond to this match request within {AUTO_REJECT_DAYS} days.</p>
        <p><a href="{accept_link}">View Match Request</a></p>
        {SIGNATURE}
    """
    return _send(mentor.email, f"New Mentee Match Request - {_program_name(program)}", html)


def notify_mentee_of_acceptance(db: Session, match: MentorMenteeMatching) -> bool:
    program = db.get(MentoringProgram, match.program_id)
    reg = db.get(MenteeRegistration, match.mentee_registration_id)
    if not reg:
        logger.error("Mentee registration %s not found for match acceptance", match.mentee_registration_id)
        return False

    html = f"""
        <h2>Mentor Match Accepted</h2>
        <p>Dear {_esc(reg.first_name)} {_esc(reg.last_name)},</p>
        <p>Great news! Your mentor has accepted the match for the <strong>{_esc(_program_name(program))}</strong> program.</p>
        <p>Your mentor will be in touch with you soon to begin your mentoring journey.</p>
        {SIGNATURE}
    """
    return _send(reg.contact_email, f"Mentor Match Accepted - {_program_name(program)}", html)


def notify_manual_matching_required(db: Session, program_id: str, mentee_registration_id: str) -> int:
    """Email every program coordinator; returns how many emails went out."""
    program = db.get(MentoringProgram, program_id)
    if not program:
        return 0
    reg = db.get(MenteeRegistration, mentee_registration_id)
    mentee = f"{reg.first_name or ''} {reg.last_name or ''} ({reg.personal_email or ''})" if reg else mentee_registration_id

    html = f"""
        <h2>Manual Matching Required</h2>
        <p>A mentee requires manual matching as all preferences have been exhausted.</p>
        <p>Program: {_esc(program.name)}</p>
        <p>Mentee: {_esc(mentee)}</p>
        <p>Please review and manually assign a mentor.</p>
    """
    sent = 0
    for coordinator_id in program.coordinators or []:
        coordinator = db.get(User, coordinator_id)
        if coordinator and coordinator.email and _send(coordinator.email, "Manual Matching Required", html):
            sent += 1
    logger.info("Manual matching required for mentee %s in program %s (%s coordinators notified)",
                mentee_registration_id, program_id, sent)
    return sent


def notify_manual_assignment(db: Session, match: MentorMenteeMatching) -> None:
    """Tell both sides about a staff-assigned match."""
    program = db.get(MentoringProgram, match.program_id)
    mentor = db.get(User, match.mentor_id)
    reg = db.get(MenteeRegistration, match.mentee_registration_id)
    mentee_user = db.get(User, match.mentee_id)
    if not mentor or not reg:
        return

    mentee_name = mentee_user.full_name if mentee_user else f"{reg.first_name or ''} {reg.last_name or ''}".strip()
    mentee_email = mentee_user.email if mentee_user else reg.contact_email
    name = _program_name(program)

    _send(mentee_email, f"Mentor Assigned - {name}", f"""
        <h2>Mentor Assigned</h2>
        <p>Dear {_esc(mentee_name)},</p>
        <p>A mentor has been manually assigned to you for the <strong>{_esc(name)}</strong> program.</p>
        <p><strong>Mentor:</strong> {_esc(mentor.full_name)}</p>
        {SIGNATURE}
    """)
    _send(mentor.email, f"Mentee Assigned - {name}", f"""
        <h2>Mentee Assigned</h2>
        <p>Dear {_esc(mentor.full_name)},</p>
        <p>You have been manually assigned a mentee for the <strong>{_esc(name)}</strong> program.</p>
        <p><strong>Mentee:</strong> {_esc(mentee_name)}</p>
        {SIGNATURE}
    """)
