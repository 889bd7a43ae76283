from sqlalchemy import Column, String, DateTime, Boolean, JSON

from .base import Base, new_id


class MentoringProgram(Base):
    __tablename__ = "mentoring_programs"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100))
    status = Column(String(20), nullable=False, default="draft")
    registration_end_date_mentee = Column(DateTime, nullable=False)
    registration_end_date_mentor = Column(DateTime, nullable=False)
    matching_end_date = Column(DateTime, nullable=False)
    matching_process_start_date = Column(DateTime)
    coordinators = Column(JSON, default=list)
    manager_id = Column(String(36))
    mentee_selection_emails_sent = Column(Boolean, nullable=False, default=False)
