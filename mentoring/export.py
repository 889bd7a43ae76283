"""
Google Sheet export of program matches.
"""

import os
import logging
from datetime import datetime
from typing import List

import gspread
from google.oauth2 import service_account
from sqlalchemy.orm import Session

from mentoring.logic.errors import MatchingError
from mentoring.logic.output_assembler import list_program_matches

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets", "https://www.googleapis.com/auth/drive"]

HEADER = [
    "Match ID", "Mentee", "Mentee Email", "Mentor", "Mentor Email", "Type",
    "Status", "Score", "Industry", "Programme", "Skills", "Preference",
    "Matched At", "Responded At", "Rejection Reason", "Exported At",
]


def _name(person) -> str:
    if isinstance(person, dict):
        return f"{person.get('firstName') or ''} {person.get('lastName') or ''}".strip()
    return str(person or "")


def _email(person) -> str:
    if isinstance(person, dict):
        return person.get("email") or ""
    return ""


def build_rows(matches: List[dict], exported_at: str) -> List[list]:
    rows = []
    for m in matches:
        breakdown = m.get("scoreBreakdown") or {}
        rows.append([
            m["_id"],
            _name(m.get("menteeId")),
            _email(m.get("menteeId")),
            _name(m.get("mentorId")),
            _email(m.get("mentorId")),
            m.get("matchType") or "",
            m.get("status") or "",
            m.get("matchScore") or 0,
            breakdown.get("industryScore") or 0,
            breakdown.get("programmeScore") or 0,
            breakdown.get("skillsScore") or 0,
            breakdown.get("preferenceScore") or 0,
            m.get("matchedAt") or "",
            m.get("mentorResponseAt") or "",
            m.get("rejectionReason") or "",
            exported_at,
        ])
    return rows


def open_worksheet(spreadsheet_id: str):
    creds = service_account.Credentials.from_service_account_file(
        os.environ.get("GOOGLE_SERVICE_ACCOUNT_FILE"),
        scopes=SCOPES,
    )
    gc = gspread.authorize(creds)
    sh = gc.open_by_key(spreadsheet_id)
    return sh.sheet1


def export_program_matches(db: Session, program_id: str, tenant_id: str) -> dict:
    """Append every match of the program to the configured sheet."""
    spreadsheet_id = os.environ.get("MATCH_EXPORT_SHEET_ID")
    if not spreadsheet_id or not os.environ.get("GOOGLE_SERVICE_ACCOUNT_FILE"):
        raise MatchingError("Google Sheet export is not configured", 500)

    matches = list_program_matches(db, program_id, tenant_id)
    rows = build_rows(matches, datetime.utcnow().isoformat())

    worksheet = open_worksheet(spreadsheet_id)
    if not worksheet.row_values(1):
        worksheet.append_row(HEADER)
    if rows:
        worksheet.append_rows(rows)

    logger.info("Exported %s matches of program %s to sheet %s", len(rows), program_id, spreadsheet_id)
    return {"programId": program_id, "rowsExported": len(rows)}
