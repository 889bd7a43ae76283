from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from dotenv import load_dotenv

from db import get_db, init_db
from models.schemas_user import UserLogin, UserOut, TokenResponse
from utils.crud_user import get_user_by_email
from utils.auth_utils import verify_password, create_token
from utils.auth_deps import auth_user, require_staff
from utils.email_service import smtp_diagnostics
from mentoring.logic.constants import MATCH_SWEEP_ENABLED, SELECTION_EMAIL_SWEEP_ENABLED
from mentoring.logic.errors import MatchingError
from mentoring.routes import router as matching_router
from mentoring.scheduler import match_sweep_service, selection_email_service

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("App starting")
    init_db()
    if MATCH_SWEEP_ENABLED:
        await match_sweep_service.start()
    if SELECTION_EMAIL_SWEEP_ENABLED:
        await selection_email_service.start()
    yield
    if MATCH_SWEEP_ENABLED:
        await match_sweep_service.stop()
    if SELECTION_EMAIL_SWEEP_ENABLED:
        await selection_email_service.stop()


app = FastAPI(title="AlumniAccel Mentoring API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(matching_router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(MatchingError)
async def matching_error_handler(request: Request, exc: MatchingError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Invalid request", "errors": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(e.get("loc", [])), "msg": e.get("msg")} for e in exc.errors()]


# =============================================================================
# AUTH & META
# =============================================================================

@app.post("/auth/login", response_model=TokenResponse, tags=["auth"], summary="Login")
def login(payload: UserLogin, db_session=Depends(get_db)):
    db: Session
    with db_session as db:
        user = get_user_by_email(db, payload.email.lower())
        if not user or not verify_password(payload.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid credentials")
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Account disabled")
        return TokenResponse(access_token=create_token(str(user.id), user.tenant_id))


@app.get("/users/me", response_model=UserOut, tags=["users"], summary="Current user")
def me(current: UserOut = Depends(auth_user)):
    return current


@app.get("/health", tags=["meta"], summary="Health check")
def health():
    return {"status": "ok"}


@app.get("/debug/smtp", tags=["meta"], summary="SMTP diagnostics (staff only)")
def smtp_debug(current: UserOut = Depends(require_staff)):
    return smtp_diagnostics()
