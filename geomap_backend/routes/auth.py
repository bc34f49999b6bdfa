from fastapi import APIRouter, Depends, Response, status

from geomap_backend import security
from geomap_backend.config import settings
from geomap_backend.schemas import Credentials, SuccessResponse, UserOut
from geomap_backend.security import COOKIE_NAME, get_current_user, get_token
from geomap_database.db import get_db
from geomap_database.models import User

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


# PUBLIC_INTERFACE
@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, summary="Register a new user")
def register(credentials: Credentials, response: Response, db=Depends(get_db)):
    """
    Register a new user and start a session for it.
    Username must be 3-50 characters, password at least 8.
    """
    user, token = security.register(db, credentials.username, credentials.password)
    set_auth_cookie(response, token)
    return {"username": user.username}

# PUBLIC_INTERFACE
@router.post("/login", response_model=UserOut, summary="Log in and start a session")
def login(credentials: Credentials, response: Response, db=Depends(get_db)):
    """
    User login. Sets the session cookie on success.
    Unknown usernames and wrong passwords fail identically.
    """
    user, token = security.login(db, credentials.username, credentials.password)
    set_auth_cookie(response, token)
    return {"username": user.username}

# PUBLIC_INTERFACE
@router.post("/logout", response_model=SuccessResponse, summary="End the current session")
def logout(response: Response, token=Depends(get_token)):
    """
    Revoke the presented credential and clear the session cookie.
    Always succeeds.
    """
    security.logout(token)
    clear_auth_cookie(response)
    return {"success": True}

# PUBLIC_INTERFACE
@router.get("/check", response_model=UserOut, summary="Check the current session")
def check(current_user: User = Depends(get_current_user)):
    """
    Return the username behind a valid session.
    """
    return {"username": current_user.username}
