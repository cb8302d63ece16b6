"""
Pytest configuration: test settings, in-memory database, fake SMS gateway.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient
from passlib.context import CryptContext

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "s3cret-pass"
OPERATOR_PHONE = "+15550001111"
SALON_NUMBER = "+15559990000"

# Settings are read once at import of app.core.config, so set them first
os.environ.update(
    {
        "ENV": "test",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "SECRET_KEY": "test-secret-key",
        "ADMIN_USERNAME": ADMIN_USERNAME,
        "ADMIN_PASSWORD_HASH": CryptContext(schemes=["bcrypt"], bcrypt__rounds=4).hash(ADMIN_PASSWORD),
        "TWILIO_ACCOUNT_SID": "ACtest",
        "TWILIO_AUTH_TOKEN": "test-token",
        "TWILIO_FROM_NUMBER": SALON_NUMBER,
        "OPERATOR_PHONE": OPERATOR_PHONE,
        "SMTP_HOST": "",
    }
)

from app.api.deps import get_sms_gateway  # noqa: E402
from app.core.db import build_engine, build_session_maker, get_session, init_db  # noqa: E402
from app.core.errors import UpstreamError  # noqa: E402
from app.main import app  # noqa: E402
from app.services.appointment_service import AppointmentStore  # noqa: E402


class FakeSmsGateway:
    """Records outbound SMS instead of calling Twilio."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send(self, to_phone: str, body: str) -> str:
        if self.fail:
            raise UpstreamError("Twilio send failed: simulated outage")
        self.sent.append((to_phone, body))
        return f"SM{len(self.sent):032d}"

    def sent_to(self, phone: str) -> list[str]:
        return [body for to, body in self.sent if to == phone]


@pytest.fixture
def gateway():
    return FakeSmsGateway()


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def store(session_maker):
    async with session_maker() as session:
        yield AppointmentStore(session)


@pytest.fixture
async def client(session_maker, gateway):
    async def override_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_sms_gateway] = lambda: gateway
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_headers(client):
    resp = await client.post("/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def booking(**overrides):
    body = {"name": "A", "phone": "+1555", "service": "Cut", "date": "2024-06-01", "time": "10:00"}
    body.update(overrides)
    return body
