from sqlalchemy.orm import Session
from sqlalchemy import select
from models.models_user import User

def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()

def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)

def create_user(
    db: Session,
    *,
    email: str,
    first_name: str | None,
    last_name: str | None,
    role: str,
    password_hash: str,
    tenant_id: str | None = None,
) -> User:
    user = User(
        email=email.lower(),
        first_name=first_name,
        last_name=last_name,
        role=role,
        password_hash=password_hash,
        tenant_id=tenant_id,
    )
    db.add(user)
    db.flush()
    return user
