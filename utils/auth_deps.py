import logging
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from db import get_db
from models.models_user import STAFF_ROLES
from models.schemas_user import UserOut
from utils.auth_utils import decode_token
from utils.crud_user import get_user

logger = logging.getLogger(__name__)


def auth_user(authorization: str | None = Header(default=None)) -> UserOut:
    """
    Resolve the bearer token to the current user; tenantId claim wins over the stored tenant.

    The lookup opens its own short session; routes get theirs from Depends(get_db).
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        data = decode_token(token)
    except Exception as e:
        logger.error(f"Token decode failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = data.get("sub")
    db: Session
    with get_db() as db:
        user = get_user(db, user_id)
        if not user or not user.is_active:
            logger.error(f"User not found for id: {user_id}")
            raise HTTPException(status_code=401, detail="User not found")
        current = UserOut.model_validate(user)
    if data.get("tenantId"):
        current.tenant_id = data["tenantId"]
    return current


def require_staff(current: UserOut = Depends(auth_user)) -> UserOut:
    if current.role not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return current


def optional_auth_user(authorization: str | None = Header(default=None)) -> UserOut | None:
    """Like auth_user, but anonymous requests pass through as None."""
    if not authorization:
        return None
    return auth_user(authorization)
