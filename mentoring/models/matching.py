from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Index, text

from .base import Base, new_id

_ACTIVE = text("status IN ('pending_mentor_acceptance', 'accepted')")


class MentorMenteeMatching(Base):
    __tablename__ = "mentor_mentee_matchings"
    __table_args__ = (
        # at most one active match per mentee registration and program
        Index(
            "uq_active_match_per_mentee",
            "tenant_id",
            "program_id",
            "mentee_registration_id",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
        Index("ix_match_mentor_status", "mentor_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=False)
    program_id = Column(String(36), nullable=False)
    mentee_id = Column(String(36), nullable=False)
    mentee_registration_id = Column(String(36), nullable=False)
    mentor_id = Column(String(36), nullable=False)
    mentor_registration_id = Column(String(36), nullable=False)

    match_type = Column(String(20), nullable=False)
    preferred_choice_order = Column(Integer)
    match_score = Column(Integer, nullable=False, default=0)
    industry_score = Column(Integer, nullable=False, default=0)
    programme_score = Column(Integer, nullable=False, default=0)
    skills_score = Column(Integer, nullable=False, default=0)
    preference_score = Column(Integer, nullable=False, default=0)

    status = Column(String(32), nullable=False, default="pending_mentor_acceptance")
    mentee_selected_mentors = Column(JSON, default=list)
    matched_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    auto_reject_at = Column(DateTime)
    mentor_response_at = Column(DateTime)
    rejection_reason = Column(Text)
    matched_by = Column(String(36))

    @property
    def score_breakdown(self) -> dict:
        return {
            "industryScore": self.industry_score,
            "programmeScore": self.programme_score,
            "skillsScore": self.skills_score,
            "preferenceScore": self.preference_score,
        }
