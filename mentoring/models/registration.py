from sqlalchemy import Column, String, Integer, JSON, Date

from .base import Base, new_id


class MentorRegistration(Base):
    __tablename__ = "mentor_registrations"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), index=True, nullable=False)
    program_id = Column(String(36), index=True, nullable=False)
    user_id = Column(String(36), index=True, nullable=False)
    preferred_name = Column(String(100))
    areas_of_mentoring = Column(JSON, default=list)
    status = Column(String(20), nullable=False, default="submitted")


class MenteeRegistration(Base):
    __tablename__ = "mentee_registrations"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), index=True, nullable=False)
    program_id = Column(String(36), index=True, nullable=False)
    user_id = Column(String(36), index=True)
    first_name = Column(String(30))
    last_name = Column(String(30))
    personal_email = Column(String(255))
    sit_email = Column(String(255))
    preferred_mailing_address = Column(String(255))
    mobile_number = Column(String(20))
    date_of_birth = Column(Date)
    class_of = Column(Integer)
    areas_of_mentoring = Column(JSON, default=list)
    status = Column(String(20), nullable=False, default="submitted")
    preferred_mentors = Column(JSON, default=list)
    registration_token = Column(String(64), index=True)
    validated_student_id = Column(String(10))

    @property
    def contact_email(self) -> str | None:
        return self.preferred_mailing_address or self.personal_email or self.sit_email
