from typing import AsyncIterator

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .domain.collaborators import NotificationSender, PaymentGateway, WaiverIssuer
from .infrastructure.collaborators import LoggingNotificationSender, LoggingPaymentGateway, LoggingWaiverIssuer
from .utils.auth import decode_access_token


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _staff_from_header(authorization: str) -> str:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Bearer token required")

    settings = get_settings()
    try:
        return decode_access_token(
            token.strip(),
            secret=settings.auth_secret,
            algorithms=[settings.auth_algorithm],
        )
    except ValueError as exc:
        raise _unauthorized("invalid or expired token") from exc


async def get_current_staff_id(authorization: str | None = Header(default=None)) -> str:
    if authorization is None:
        raise _unauthorized("Authorization header required")
    return _staff_from_header(authorization)


async def get_optional_staff_id(authorization: str | None = Header(default=None)) -> str | None:
    """Staff id when a token is sent; public callers get None, bad tokens still 401."""
    if authorization is None:
        return None
    return _staff_from_header(authorization)


def get_payment_gateway() -> PaymentGateway:
    return LoggingPaymentGateway()


def get_notification_sender() -> NotificationSender:
    return LoggingNotificationSender()


def get_waiver_issuer() -> WaiverIssuer:
    return LoggingWaiverIssuer()
