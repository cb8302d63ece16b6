import hmac

from app.core.config import settings
from app.core.security import create_access_token, verify_password


def authenticate_admin(username: str, password: str) -> bool:
    """Check credentials against the single configured admin identity."""
    username_ok = hmac.compare_digest(username.encode(), settings.admin_username.encode())
    # Always run bcrypt so a wrong username costs the same as a wrong password
    password_ok = verify_password(password, settings.admin_password_hash)
    return username_ok and password_ok


def login_admin(username: str, password: str) -> tuple[str, int] | None:
    """Returns (access_token, expires_in_seconds), or None on bad credentials."""
    if not authenticate_admin(username, password):
        return None
    expires_in = settings.access_token_expire_minutes * 60
    return create_access_token(settings.admin_username), expires_in
