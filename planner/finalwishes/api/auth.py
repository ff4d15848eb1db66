"""
Authentication API endpoints
Handles signup, login and the current-user lookup
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import timedelta
import logging

from finalwishes.utils.database import get_db, utcnow
from finalwishes.models.user import User
from finalwishes.middleware.auth import require_auth
from finalwishes.services.account import DELETE_CONFIRMATION, delete_account
from finalwishes.utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


# Pydantic models
class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember: Optional[bool] = False


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    user_id: str
    email: str


class DeleteAccountRequest(BaseModel):
    confirm: Optional[str] = None


class AuthUser(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None


def _issue_token(user: User, response: Response, remember: bool = False) -> LoginResponse:
    token_data = {
        "sub": str(user.id),
        "email": user.email,
        "type": "access"
    }
    expires_delta = timedelta(days=30) if remember else timedelta(hours=24)
    access_token = create_access_token(token_data, expires_delta)

    response.set_cookie(
        key="session_token",
        value=access_token,
        httponly=True,
        samesite="lax",
        max_age=int(expires_delta.total_seconds()),
    )

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=str(user.id),
        email=user.email,
    )


@router.post("/signup", response_model=LoginResponse, status_code=201)
async def signup(
    signup_data: SignupRequest,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Create an account and sign it in"""
    email = signup_data.email.lower()

    result = await db.execute(select(User.id).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=email,
        full_name=(signup_data.full_name or "").strip() or None,
        password_hash=hash_password(signup_data.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    logger.info(f"New user signed up: {user.id}")
    return _issue_token(user, response)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate with email and password"""

    result = await db.execute(
        select(User).where(User.email == login_data.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user or not user.password_hash or not verify_password(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password"
        )

    user.last_login_at = utcnow()
    await db.commit()

    return _issue_token(user, response, bool(login_data.remember))


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie("session_token")
    return {"message": "Logged out"}


@router.get("/me", response_model=AuthUser)
async def get_me(user: User = Depends(require_auth)):
    """Get current authenticated user"""
    return AuthUser(id=str(user.id), email=user.email, full_name=user.full_name)


@router.delete("/account")
async def delete_my_account(
    response: Response,
    request: Optional[DeleteAccountRequest] = None,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    """Permanently delete the account and everything stored for it"""
    if request is None or request.confirm != DELETE_CONFIRMATION:
        raise HTTPException(
            status_code=400,
            detail=f'Confirmation required. Send {{"confirm": "{DELETE_CONFIRMATION}"}} to proceed.'
        )

    try:
        deleted = await delete_account(db, user)
    except Exception:
        raise HTTPException(status_code=500, detail="We could not complete deletion. Please contact support.")

    response.delete_cookie("session_token")
    return {"success": True, "deleted": deleted}
