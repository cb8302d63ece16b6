from pathlib import Path
from typing import Annotated

from pydantic import StringConstraints, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"

# Set and non-blank; an empty SECRET_KEY would let anyone sign admin tokens
RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: RequiredStr

    # JWT (admin panel only, no refresh)
    secret_key: RequiredStr
    access_token_expire_minutes: int = 120
    algorithm: str = "HS256"

    # Single admin identity; password is stored pre-hashed (bcrypt)
    admin_username: RequiredStr
    admin_password_hash: RequiredStr

    # Twilio
    twilio_account_sid: RequiredStr
    twilio_auth_token: RequiredStr
    twilio_from_number: RequiredStr
    # Salon owner's phone: receives approval prompts, sole allowed webhook sender
    operator_phone: RequiredStr

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Salon"
    contact_inbox: str = ""
    salon_name: str = "Salon"

    @field_validator("twilio_from_number", "operator_phone")
    @classmethod
    def _require_e164(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2 or not value.startswith("+"):
            raise ValueError("phone number must be in E.164 format (e.g. +15551234567)")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)


settings = Settings()
