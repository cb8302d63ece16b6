from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_session
from app.core.errors import AuthError
from app.core.security import decode_access_token
from app.services.appointment_service import AppointmentStore
from app.services.sms_service import SmsSender, TwilioSmsGateway

security = HTTPBearer(auto_error=False)


def get_store(session: AsyncSession = Depends(get_session)) -> AppointmentStore:
    return AppointmentStore(session)


@lru_cache
def get_sms_gateway() -> SmsSender:
    return TwilioSmsGateway(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_from_number,
    )


def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing token")
    username = decode_access_token(credentials.credentials)
    if not username or username != settings.admin_username:
        raise AuthError("Invalid or expired token")
    return username
