"""
Session/identity service: password hashing, JWT issuance and validation,
logout revocation, and the FastAPI dependencies that guard protected routes.

A credential moves through ``Issued -> Valid -> {Expired | Revoked}``. Expiry
is checked on demand when the token is decoded; revocation is an in-process
list of token ids kept until the token would have expired anyway.
"""
import logging
import threading
import time
import uuid
from datetime import timedelta
from typing import Dict, Optional, Tuple

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from geomap_backend import exc
from geomap_backend.config import settings
from geomap_backend.schemas import (
    PASSWORD_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    utcnow,
)
from geomap_database.db import get_db
from geomap_database.models import User

logger = logging.getLogger(__name__)

COOKIE_NAME = "auth_token"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class RevocationList:
    """Token ids revoked by logout, remembered until their own expiry."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._revoked: Dict[str, float] = {}
        self._lock = threading.Lock()

    def revoke(self, jti: str, expires_at: float) -> None:
        with self._lock:
            self._prune()
            self._revoked[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            self._prune()
            return jti in self._revoked

    def _prune(self) -> None:
        now = self._clock()
        for jti in [j for j, exp in self._revoked.items() if exp <= now]:
            del self._revoked[jti]


revoked_tokens = RevocationList()


# Utility functions for auth
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)

def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Generates a signed JWT for ``user`` with a fresh token id."""
    expire = utcnow() + (expires_delta if expires_delta else timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "jti": uuid.uuid4().hex,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


# PUBLIC_INTERFACE
def decode_token(token: Optional[str]) -> dict:
    """
    Validate signature, expiry and revocation of ``token`` and return its
    claims. Every failure raises the same ``Unauthorized``.
    """
    if not token:
        raise exc.Unauthorized()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise exc.Unauthorized()
    if payload.get("sub") is None or payload.get("jti") is None:
        raise exc.Unauthorized()
    if revoked_tokens.is_revoked(payload["jti"]):
        raise exc.Unauthorized()
    return payload


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def _validate_credentials(username: str, password: str) -> None:
    if not username or not password:
        raise exc.ValidationError("Username and password are required")
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise exc.ValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    if len(password) < PASSWORD_MIN_LENGTH:
        raise exc.ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")


# PUBLIC_INTERFACE
def register(db: Session, username: str, password: str) -> Tuple[User, str]:
    """
    Create a user and issue its first credential.

    Raises ValidationError for bad lengths and Conflict for a taken username.
    """
    username = (username or "").strip()
    _validate_credentials(username, password)
    if get_user_by_username(db, username):
        raise exc.Conflict()
    user = User(username=username, hashed_password=get_password_hash(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", username)
    return user, create_access_token(user)


# PUBLIC_INTERFACE
def login(db: Session, username: str, password: str) -> Tuple[User, str]:
    """
    Authenticate and issue a credential.

    Unknown usernames and wrong passwords raise the identical
    InvalidCredentials; the unknown-user path still runs a hash verification.
    """
    user = get_user_by_username(db, (username or "").strip())
    if user is None:
        pwd_context.dummy_verify()
        raise exc.InvalidCredentials()
    if not verify_password(password or "", user.hashed_password):
        raise exc.InvalidCredentials()
    user.last_login = utcnow()
    db.commit()
    return user, create_access_token(user)


# PUBLIC_INTERFACE
def check(db: Session, token: Optional[str]) -> User:
    """Resolve a credential to its user, or raise Unauthorized."""
    payload = decode_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise exc.Unauthorized()
    user = db.get(User, user_id)
    if user is None:
        raise exc.Unauthorized()
    return user


# PUBLIC_INTERFACE
def logout(token: Optional[str]) -> None:
    """Revoke ``token`` if it is still valid. Never fails."""
    try:
        payload = decode_token(token)
    except exc.Unauthorized:
        return
    revoked_tokens.revoke(payload["jti"], float(payload["exp"]))


def get_token(
    bearer: Optional[str] = Depends(oauth2_scheme),
    auth_token: Optional[str] = Cookie(default=None),
) -> Optional[str]:
    """An explicit Authorization header wins over the session cookie."""
    return bearer or auth_token


class Identity:
    """The authenticated caller as carried by a valid credential."""

    def __init__(self, user_id: int, username: str):
        self.user_id = user_id
        self.username = username


def get_current_identity(token: Optional[str] = Depends(get_token)) -> Identity:
    """Decodes the credential without touching the database."""
    payload = decode_token(token)
    try:
        return Identity(int(payload["sub"]), payload.get("username", ""))
    except (TypeError, ValueError):
        raise exc.Unauthorized()


def get_current_user(token: Optional[str] = Depends(get_token), db=Depends(get_db)) -> User:
    """Decodes the credential and loads its user from the database."""
    return check(db, token)
