import secrets
from datetime import timedelta
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Cookie, Depends, Request, Response
from fastapi.responses import RedirectResponse
from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from config import Settings, SettingsDep
from db import SessionDep, remove, save
from errors import AuthError, ForbiddenError, StorageError, ValidationError
from models import User, UserSession, utcnow
from .common import is_json, parse_payload, read_payload
from schemas import LoginData, UserCreate, UserRead

router = APIRouter(prefix="/api", tags=["auth"])
logger = structlog.get_logger(__name__)

COOKIE_NAME = "session"

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.secret_key, salt="session")


def create_session_token(session_id: str, settings: Settings) -> str:
    """
    Sign the server-side session id for the cookie.
    Example data:
        {"sid": "Qm9n..."}
    """
    return _serializer(settings).dumps({"sid": session_id})


def verify_session_token(token: str, settings: Settings) -> Optional[dict]:
    """
    Returns {'sid': ...} if the signature is valid and younger than
    settings.session_max_age, otherwise None.
    """
    try:
        return _serializer(settings).loads(token, max_age=settings.session_max_age)
    except BadSignature:
        return None


def authenticate(session: Session, credentials: LoginData) -> User:
    """
    Check username + password.
    Unknown user and wrong password fail with the same message.
    """
    user = session.exec(
        select(User).where(User.username == credentials.username)
    ).first()

    if user is None:
        pwd_context.dummy_verify()
        raise AuthError("Invalid username or password")

    if not verify_password(credentials.password, user.password_hash):
        raise AuthError("Invalid username or password")

    return user


def open_session(session: Session, user: User, settings: Settings) -> str:
    """Store a new session row, dropping rows that can no longer be used."""
    cutoff = utcnow() - timedelta(seconds=settings.session_max_age)
    session.exec(delete(UserSession).where(UserSession.created_at < cutoff))
    record = UserSession(id=secrets.token_urlsafe(32), user_id=user.id)
    save(session, record)
    return create_session_token(record.id, settings)


def _load_user(session: Session, token: Optional[str], settings: Settings) -> User:
    if token is None:
        raise AuthError("Not logged in")

    data = verify_session_token(token, settings)
    if not data:
        raise AuthError("Invalid or expired session")

    sid = data.get("sid")
    record = session.get(UserSession, sid) if sid else None
    if record is None:
        raise AuthError("Invalid or expired session")

    user = session.get(User, record.user_id)
    if user is None:
        raise AuthError("User not found for this session")

    return user


def get_current_user(
    session: SessionDep,
    settings: SettingsDep,
    session_token: Optional[str] = Cookie(default=None, alias=COOKIE_NAME),
) -> User:
    """
    Reads the 'session' cookie, checks the signature and the server-side
    session row, and returns the logged-in User.
    Raises 401 if not logged in / invalid.
    """
    return _load_user(session, session_token, settings)


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_optional_user(
    session: SessionDep,
    settings: SettingsDep,
    session_token: Optional[str] = Cookie(default=None, alias=COOKIE_NAME),
) -> Optional[User]:
    """
    Like get_current_user, but returns None instead of raising 401.
    Used by the page routes.
    """
    try:
        return _load_user(session, session_token, settings)
    except AuthError:
        return None


OptionalUserDep = Annotated[Optional[User], Depends(get_optional_user)]


def require_role(user: User, role: str) -> None:
    if user.role != role:
        if role == "ngo":
            raise ForbiddenError("Forbidden: NGO access required")
        raise ForbiddenError("Forbidden: individual account required")


def require_ngo(user: CurrentUserDep) -> User:
    require_role(user, "ngo")
    return user


def require_individual(user: CurrentUserDep) -> User:
    require_role(user, "individual")
    return user


NgoDep = Annotated[User, Depends(require_ngo)]
IndividualDep = Annotated[User, Depends(require_individual)]


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
        max_age=settings.session_max_age,
    )


def _user_json(user: User) -> dict:
    return UserRead.model_validate(user).model_dump(by_alias=True)


def _username_taken(session: Session, username: str) -> bool:
    return session.exec(
        select(User).where(User.username == username)
    ).first() is not None


@router.post("/register", status_code=201)
async def register(
    request: Request,
    response: Response,
    session: SessionDep,
    settings: SettingsDep,
):
    """
    Register a new account with a hashed password and log it in.
    Accepts either JSON (API/Swagger) or form-data (from HTML form).
    """
    data = await read_payload(request)

    user_in = parse_payload(UserCreate, data)

    if _username_taken(session, user_in.username):
        raise ValidationError("Username already exists")

    user = User(
        username=user_in.username,
        password_hash=hash_password(user_in.password),
        full_name=user_in.full_name,
        role=user_in.role,
        ngo_name=user_in.ngo_name,
        ngo_registration=user_in.ngo_registration,
        contact_phone=user_in.contact_phone,
        location=user_in.location,
    )
    try:
        save(session, user)
    except StorageError as exc:
        # lost a race with another registration of the same name
        if isinstance(exc.__cause__, IntegrityError):
            raise ValidationError("Username already exists") from exc
        raise
    logger.info("user_registered", user_id=user.id, role=user.role)

    token = open_session(session, user, settings)

    if not is_json(request):
        resp = RedirectResponse(url="/", status_code=303)
        _set_session_cookie(resp, token, settings)
        return resp

    _set_session_cookie(response, token, settings)
    return _user_json(user)


@router.post("/login")
async def login(
    request: Request,
    response: Response,
    session: SessionDep,
    settings: SettingsDep,
):
    """
    Log in with username + password and set a signed session cookie.
    Accepts either JSON (API/Swagger) or form-data (from HTML form).
    """
    data = await read_payload(request)

    credentials = parse_payload(LoginData, data)

    try:
        user = authenticate(session, credentials)
    except AuthError:
        logger.info("login_failed")
        raise

    token = open_session(session, user, settings)
    logger.info("user_logged_in", user_id=user.id)

    if not is_json(request):
        resp = RedirectResponse(url="/", status_code=303)
        _set_session_cookie(resp, token, settings)
        return resp

    _set_session_cookie(response, token, settings)
    return _user_json(user)


@router.post("/logout")
def logout(
    response: Response,
    session: SessionDep,
    settings: SettingsDep,
    session_token: Optional[str] = Cookie(default=None, alias=COOKIE_NAME),
):
    """
    Drop the server-side session and clear the cookie.
    """
    if session_token is not None:
        data = verify_session_token(session_token, settings) or {}
        sid = data.get("sid")
        record = session.get(UserSession, sid) if sid else None
        if record is not None:
            remove(session, record)
            logger.info("user_logged_out", user_id=record.user_id)

    response.delete_cookie(COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/user", response_model=UserRead)
def read_me(user: CurrentUserDep):
    """
    Get info about the currently logged-in account.
    """
    return user
