"""
Auth API — /auth
─────────────────
Endpoints:
  POST /auth/signup   — Create account, return user + token (201)
  POST /auth/login    — Username or email + password, return JWT
  GET  /auth/me       — Own account (bearer token)
  PUT  /auth/me       — Edit own profile picture / bio
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.schemas.auth import (
    MeData,
    ProfileUpdateRequest,
    SignupData,
    SignupRequest,
    TokenResponse,
)
from app.schemas.common import Envelope
from app.services.auth_service import (
    DuplicateUserError,
    authenticate_user,
    create_user,
    issue_access_token,
    update_profile,
)

router = APIRouter()


@router.post("/signup", response_model=Envelope[SignupData], status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> dict:
    """
    Create an account and sign the new user in.

    A taken username or email is a 400.
    """
    try:
        user = create_user(db, payload.username, payload.email, payload.password)
    except DuplicateUserError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"user": user, "token": issue_access_token(user)},
    }


@router.post("/login", response_model=TokenResponse)
def login(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> TokenResponse:
    """
    OAuth2 password form, so the /docs Authorize button works as-is.
    The ``username`` field also accepts an email address.
    """
    user = authenticate_user(db, form.username, form.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenResponse(access_token=issue_access_token(user))


@router.get("/me", response_model=Envelope[MeData])
def me(current_user: User = Depends(get_current_user)) -> dict:
    return {"success": True, "data": {"user": current_user}}


@router.put("/me", response_model=Envelope[MeData])
def update_me(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    user = update_profile(db, current_user, payload)
    return {"success": True, "message": "Profile updated", "data": {"user": user}}
