from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, field_validator
import logging

from app.database import get_db
from app.models import User
from app.services.auth import (
    MAX_PASSWORD_BYTES,
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# Pydantic models
class CredentialsRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username cannot be empty")
        return value

    @field_validator("password")
    @classmethod
    def check_password_length(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password too long (max {MAX_PASSWORD_BYTES} bytes)")
        return value


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


def user_info(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "created_at": user.created_at.isoformat() if user.created_at else None
    }


@router.post("/register", response_model=AuthResponse)
async def register(
        request: CredentialsRequest,
        db: Session = Depends(get_db)
):
    """
    Register a new user and log them in
    """
    existing_user = db.query(User).filter(User.username == request.username).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )

    try:
        user = User(
            username=request.username,
            password_hash=hash_password(request.password)
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        logger.error(f"Register error: {str(e)}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )

    logger.info(f"New user registered: {user.username}")

    return AuthResponse(
        access_token=create_access_token(user.id),
        user=user_info(user)
    )


@router.post("/login", response_model=AuthResponse)
async def login(
        request: CredentialsRequest,
        db: Session = Depends(get_db)
):
    """
    Exchange username and password for an access token
    """
    user = db.query(User).filter(User.username == request.username).first()

    if user is None or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    logger.info(f"User logged in: {user.username}")

    return AuthResponse(
        access_token=create_access_token(user.id),
        user=user_info(user)
    )


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return {"user": user_info(current_user)}


@router.post("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """
    Access tokens are not stored server-side; the client drops its token
    """
    logger.info(f"User logged out: {current_user.username}")
    return {"message": "Logged out successfully"}
