import datetime as dt
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> dt.datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


class AppointmentBase(SQLModel):
    name: str
    phone: str
    service: str
    date: dt.date = Field(index=True)
    time: str  # HH:MM, zero-padded so it sorts as text


class Appointment(AppointmentBase, table=True):
    __tablename__ = "appointments"
    # At most one booking per (date, time)
    __table_args__ = (UniqueConstraint("date", "time", name="uq_appointments_date_time"),)

    id: int | None = Field(default=None, primary_key=True)
    status: AppointmentStatus = Field(default=AppointmentStatus.pending, index=True)
    created_at: dt.datetime = Field(default_factory=_utc_naive_now)
    message_sid: str | None = None  # provider id of the approval prompt SMS


class AppointmentCreate(AppointmentBase):
    pass


class AppointmentPublic(AppointmentBase):
    id: int
    status: AppointmentStatus
    created_at: dt.datetime
    message_sid: str | None = None


class AppointmentCreated(AppointmentPublic):
    note: str = "Awaiting approval from the salon. You will get a text once it is confirmed."


class AppointmentSlot(SQLModel):
    """What the public booking page may see: which times are taken, not by whom."""

    date: dt.date
    time: str
    status: AppointmentStatus
