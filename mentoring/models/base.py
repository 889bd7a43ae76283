# Re-export the main Base class from db.py for mentoring models
# so every table shares one metadata
import uuid

from db import Base


def new_id() -> str:
    return str(uuid.uuid4())


__all__ = ["Base", "new_id"]
