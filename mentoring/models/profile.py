from sqlalchemy import Column, String

from .base import Base, new_id


class AlumniProfile(Base):
    __tablename__ = "alumni_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), unique=True, index=True, nullable=False)
    current_company = Column(String(255))
    industry = Column(String(255))
    program = Column(String(255))
    department = Column(String(255))
