"""Authentication endpoints: emailed one-time codes and JWT session tokens."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

import httpx
import structlog
from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from projectcrm.config import get_settings
from projectcrm.db.base import utcnow
from projectcrm.db.session import get_db_session
from projectcrm.exceptions import AuthenticationError, EmailDeliveryError, ValidationError
from projectcrm.models import AppUser, OTPCode
from projectcrm.services.email import EmailService

router = APIRouter()
logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)


class OTPRequest(BaseModel):
    """Ask for a login code."""

    email: str | None = None


class OTPVerifyRequest(BaseModel):
    """Exchange a login code for a session token."""

    email: str | None = None
    code: str | None = None


class OTPSentResponse(BaseModel):
    """Login code issued."""

    message: str
    email_sent: bool


class UserResponse(BaseModel):
    """Signed-in user."""

    id: UUID
    email: str
    username: str
    last_login: datetime | None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """JWT session token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class TokenStatus(BaseModel):
    """Result of a token check."""

    valid: bool
    user_id: UUID
    email: str


def get_email_service() -> EmailService:
    return EmailService()


def generate_otp() -> str:
    """Six random digits."""
    return f"{secrets.randbelow(1_000_000):06d}"


def normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def create_access_token(user: AppUser, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": "access",
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict:
    """Validate a session token and return its claims."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload


@router.post("/request-otp", response_model=OTPSentResponse)
async def request_otp(
    request: OTPRequest,
    db: AsyncSession = Depends(get_db_session),
    email_service: EmailService = Depends(get_email_service),
) -> OTPSentResponse:
    """Issue a login code, invalidating any older unused code for the email."""
    settings = get_settings()
    email = normalize_email(request.email)

    await db.execute(
        update(OTPCode)
        .where(OTPCode.email == email, OTPCode.used.is_(False))
        .values(used=True)
    )
    code = generate_otp()
    db.add(
        OTPCode(
            email=email,
            code=code,
            expires_at=utcnow() + timedelta(minutes=settings.otp_expire_minutes),
        )
    )
    await db.commit()

    try:
        email_sent = await email_service.send_otp(email, code)
    except httpx.HTTPError as e:
        logger.error("otp_email_failed", email=email, error=str(e))
        raise EmailDeliveryError()
    logger.info("otp_issued", email=email, email_sent=email_sent)
    return OTPSentResponse(message="Login code sent", email_sent=email_sent)


@router.post("/verify-otp", response_model=TokenResponse)
async def verify_otp(
    request: OTPVerifyRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    """Exchange a valid code for a session token, creating the user if needed."""
    settings = get_settings()
    email = normalize_email(request.email)
    code = (request.code or "").strip()
    if not code:
        raise ValidationError("Email and code are required")

    result = await db.execute(
        select(OTPCode)
        .where(
            OTPCode.email == email,
            OTPCode.code == code,
            OTPCode.used.is_(False),
            OTPCode.expires_at > utcnow(),
        )
        .order_by(OTPCode.created_at.desc())
        .limit(1)
    )
    otp = result.scalar_one_or_none()
    if otp is None:
        logger.warning("otp_rejected", email=email)
        raise AuthenticationError("Invalid or expired code")
    otp.used = True

    result = await db.execute(select(AppUser).where(AppUser.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = AppUser(email=email, username=email.split("@")[0])
        db.add(user)
        logger.info("user_created", email=email)
    user.last_login = utcnow()
    await db.commit()

    logger.info("user_logged_in", user_id=str(user.id))
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.get("/verify", response_model=TokenStatus)
async def verify_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TokenStatus:
    """Check the bearer session token."""
    if not credentials:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    return TokenStatus(valid=True, user_id=UUID(payload["sub"]), email=payload.get("email", ""))
