import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import settings
from app.core.security import (
    create_access_token,
    generate_reset_token,
    get_current_user_id,
    get_password_hash,
    verify_password,
)
from app.db import dynamo
from app.models.user import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UserCreate,
    UserInDB,
    UserLogin,
    UserPublic,
    UserUpdate,
)
from app.utils import email_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user: UserCreate):
    logger.info(f"Received registration request for: {user.email}")

    if dynamo.get_user_by_email(user.email):
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user_db = UserInDB(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
    )
    if not dynamo.put_user(user_db.model_dump(mode="json")):
        raise HTTPException(status_code=500, detail="Server error. Please try again later.")

    return {
        "message": "User registered successfully",
        "user": {"name": user_db.name, "email": user_db.email},
    }


@router.post("/login")
def login(login_data: UserLogin):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = dynamo.get_user_by_email(login_data.email)

    if not user or not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Invalid credentials for: {login_data.email}")
        raise HTTPException(status_code=400, detail="Invalid email or password")

    token = create_access_token(data={"sub": user["user_id"]})
    public = UserPublic.from_item(user)
    return {
        "token": token,
        "user": {"id": public.id, "name": public.name, "email": public.email},
    }


@router.post("/forgot-password")
def forgot_password(request: ForgotPasswordRequest):
    email = request.email.lower()
    logger.info(f"Received forgot password request for: {email}")

    user = dynamo.get_user_by_email(email)
    if not user:
        raise HTTPException(
            status_code=404,
            detail="Account doesn't exist with this email. Please register first.",
        )

    reset_token = generate_reset_token()
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    updated = dynamo.update_user(
        user["user_id"],
        {"password_reset_token": reset_token, "password_reset_expires": expires.isoformat()},
    )
    if not updated:
        raise HTTPException(status_code=500, detail="Server error. Please try again later.")

    if not email_service.is_configured():
        logger.warning("Email service not configured, returning reset token in response")
        return {
            "message": "Email service not configured. Please contact admin.",
            "resetToken": reset_token,
        }

    reset_url = email_service.build_reset_url(email, reset_token)
    if not email_service.send_password_reset_email(email, reset_url):
        if settings.DEBUG:
            return {
                "message": "Email service unavailable. Use this reset token for testing.",
                "resetToken": reset_token,
                "resetUrl": reset_url,
            }
        raise HTTPException(status_code=500, detail="Unable to send reset email. Please try again later.")

    return {"message": "Password reset email sent successfully. Please check your inbox."}


@router.post("/reset-password")
def reset_password(request: ResetPasswordRequest):
    email = request.email.lower()
    logger.info(f"Received reset password request for: {email}")

    invalid = HTTPException(
        status_code=400,
        detail="Invalid or expired reset token. Please request a new password reset.",
    )
    user = dynamo.get_user_by_email(email)
    if not user or not user.get("password_reset_token") or user["password_reset_token"] != request.token:
        raise invalid

    expires = datetime.fromisoformat(user["password_reset_expires"])
    if expires <= datetime.now(timezone.utc):
        raise invalid

    if not dynamo.clear_password_reset(user["user_id"], get_password_hash(request.new_password)):
        raise HTTPException(status_code=500, detail="Server error. Please try again later.")

    return {"message": "Password reset successfully. You can now login with your new password."}


@router.get("/verify")
def verify(user_id: str = Depends(get_current_user_id)):
    """Validate the token and return the user it belongs to"""
    user = dynamo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    public = UserPublic.from_item(user)
    return {"user": {"id": public.id, "name": public.name, "email": public.email}}


@router.put("/user", response_model=UserPublic)
def update_profile(update: UserUpdate, user_id: str = Depends(get_current_user_id)):
    """Update profile and preferences of the current user"""
    changes = update.model_dump(mode="json", exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = dynamo.update_user(user_id, changes)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic.from_item(updated)
