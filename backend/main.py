import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

from fastapi import Cookie, Depends, FastAPI, Header, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import psycopg2
from dotenv import load_dotenv
from jose import JWTError, jwt
from passlib.hash import bcrypt

_project_root = Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

load_dotenv()

from backend import app_context
from backend.app.exceptions import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    ServiceError,
    UserNotFound,
)
from backend.app.routes.appointments import router as appointments_router
from backend.app.routes.content import router as content_router
from backend.app.routes.subscriptions import router as subscriptions_router
from backend.app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserProfile,
    UserSummary,
)
from backend.app.schemas.subscriptions import MessageResponse
from backend.app.services.store import get_entitlement_store
from backend.app.store import User, seed_catalog
from backend.app.store.schema import initialize_schema
from backend.config import AppConfig, load_app_config


CONFIG: AppConfig = load_app_config()

JWT_SECRET_KEY = CONFIG.jwt_secret_key
JWT_ALGORITHM = CONFIG.jwt_algorithm
JWT_EXP_MINUTES = CONFIG.jwt_exp_minutes  # default: 7 days
SESSION_COOKIE_NAME = CONFIG.session_cookie_name

logger = logging.getLogger(__name__)


def get_conn():
    return psycopg2.connect(**CONFIG.db_settings)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenVerification(NamedTuple):
    user_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.user_id is not None


def create_access_token(*, subject: str, expires_delta: Optional[timedelta] = None) -> str:
    payload: Dict[str, Any] = {"sub": subject}
    if expires_delta is None:
        expires_delta = timedelta(minutes=JWT_EXP_MINUTES)
    payload["exp"] = _utcnow() + expires_delta
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> TokenVerification:
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return TokenVerification(error="invalid_token")
        return TokenVerification(user_id=int(subject))
    except (JWTError, ValueError):
        return TokenVerification(error="invalid_token")


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(
    authorization: Optional[str] = Header(None),
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> User:
    token = _extract_bearer_token(authorization) or session_token
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    verification = verify_access_token(token)
    if not verification.ok:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")

    user = get_entitlement_store().get_user(verification.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    return user


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=int(timedelta(minutes=JWT_EXP_MINUTES).total_seconds()),
        path="/",
    )


app_context.configure(
    config=CONFIG,
    get_conn=get_conn,
    get_current_user=get_current_user,
)

app = FastAPI(title="Massage Subscription API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(CONFIG.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(subscriptions_router)
app.include_router(appointments_router)
app.include_router(content_router)


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=dict(exc.payload))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "Internal server error"},
    )


@app.on_event("startup")
def prepare_store() -> None:
    if CONFIG.store_backend == "postgres" and CONFIG.auto_migrate:
        conn = get_conn()
        try:
            initialize_schema(conn)
        finally:
            conn.close()
    if CONFIG.seed_catalog:
        seed_catalog(get_entitlement_store(), _utcnow())


@app.post("/api/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, response: Response) -> AuthResponse:
    store = get_entitlement_store()
    email = payload.email.strip().lower()
    if store.get_user_by_email(email) is not None:
        raise EmailAlreadyRegistered()

    now = _utcnow()
    user = store.insert_user(
        User(
            email=email,
            password_hash=bcrypt.hash(payload.password),
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            phone=payload.phone or None,
            created_at=now,
            updated_at=now,
        )
    )
    logger.info("Registered user %s", user.id)

    token = create_access_token(subject=str(user.id))
    _set_session_cookie(response, token)
    return AuthResponse(
        message="Registration successful",
        user=UserSummary.from_user(user),
        token=token,
    )


@app.post("/api/auth/login", response_model=AuthResponse)
def login(payload: LoginRequest, response: Response) -> AuthResponse:
    user = get_entitlement_store().get_user_by_email(payload.email)
    if user is None or not bcrypt.verify(payload.password, user.password_hash):
        raise InvalidCredentials()

    token = create_access_token(subject=str(user.id))
    _set_session_cookie(response, token)
    return AuthResponse(message="Login successful", user=UserSummary.from_user(user), token=token)


@app.post("/api/auth/logout", response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/", httponly=True, samesite="lax")
    return MessageResponse(message="Logged out")


@app.get("/api/auth/me", response_model=UserProfile)
def read_current_user(current_user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.from_user(current_user)


@app.put("/api/auth/me", response_model=MessageResponse)
def update_current_user(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    changes = payload.model_dump(exclude_unset=True)
    updated = get_entitlement_store().update_user_profile(
        current_user.id,
        first_name=changes.get("first_name") or current_user.first_name,
        last_name=changes.get("last_name") or current_user.last_name,
        phone=changes["phone"] if "phone" in changes else current_user.phone,
        updated_at=_utcnow(),
    )
    if updated is None:
        raise UserNotFound()
    return MessageResponse(message="Profile updated successfully")


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "timestamp": _utcnow().isoformat()}
