import datetime as dt
import logging
import re

from fastapi import APIRouter, Depends, Form, Response, status

from app.api.deps import get_current_admin, get_sms_gateway, get_store
from app.api.schemas.appointment import DATE_PATTERN, BookAppointmentRequest
from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentCreated,
    AppointmentPublic,
    AppointmentSlot,
)
from app.services.appointment_service import AppointmentStore
from app.services.approval_service import resolve_reply, submit_appointment
from app.services.sms_service import SmsSender, twiml_reply

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

_DATE_RE = re.compile(DATE_PATTERN)


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(a, from_attributes=True)


def _parse_date(value: str) -> dt.date:
    if not _DATE_RE.match(value):
        raise ValidationError("Invalid date format")
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid date format")


@router.post("", response_model=AppointmentCreated, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    store: AppointmentStore = Depends(get_store),
    gateway: SmsSender = Depends(get_sms_gateway),
) -> AppointmentCreated:
    """Public booking form. The slot stays pending until the salon replies to the SMS prompt."""
    data = AppointmentCreate(
        name=body.name,
        phone=body.phone,
        service=body.service,
        date=body.parsed_date,
        time=body.time,
    )
    appointment = await submit_appointment(store, gateway, data, settings.operator_phone)
    return AppointmentCreated.model_validate(appointment, from_attributes=True)


@router.get("/date/{date}", response_model=list[AppointmentSlot])
async def list_appointments_on_date(
    date: str,
    store: AppointmentStore = Depends(get_store),
) -> list[AppointmentSlot]:
    """Public: taken times for one day (YYYY-MM-DD), without requester details."""
    appointments = await store.list_for_date(_parse_date(date))
    return [AppointmentSlot.model_validate(a, from_attributes=True) for a in appointments]


@router.get("", response_model=list[AppointmentPublic])
async def list_all_appointments(
    store: AppointmentStore = Depends(get_store),
    admin: str = Depends(get_current_admin),
) -> list[AppointmentPublic]:
    appointments = await store.list_all()
    return [_to_public(a) for a in appointments]


@router.post("/sms-webhook")
async def sms_webhook(
    body: str | None = Form(default=None, alias="Body"),
    from_phone: str | None = Form(default=None, alias="From"),
    store: AppointmentStore = Depends(get_store),
    gateway: SmsSender = Depends(get_sms_gateway),
) -> Response:
    """Twilio inbound SMS: the operator's YES/other reply to the latest pending booking."""
    appointment = await resolve_reply(store, gateway, body, from_phone, settings.operator_phone)
    reply = (
        f"{appointment.name} on {appointment.date.isoformat()} at {appointment.time} "
        f"marked {appointment.status.value}."
    )
    return Response(content=twiml_reply(reply), media_type="application/xml")


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: int,
    store: AppointmentStore = Depends(get_store),
    admin: str = Depends(get_current_admin),
) -> None:
    deleted = await store.delete(appointment_id)
    if not deleted:
        raise NotFoundError("Appointment not found")
    logger.info("Appointment %s deleted by %s", appointment_id, admin)
