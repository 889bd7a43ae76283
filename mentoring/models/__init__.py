# Export all mentoring models for easy imports
from .base import Base
from .profile import AlumniProfile
from .program import MentoringProgram
from .registration import MentorRegistration, MenteeRegistration
from .matching import MentorMenteeMatching

__all__ = [
    "Base",
    "AlumniProfile",
    "MentoringProgram",
    "MentorRegistration",
    "MenteeRegistration",
    "MentorMenteeMatching",
]
