"""Appointment approval over SMS.

A booking is stored as ``pending`` and the salon operator gets a text asking
for a YES/NO. The operator's reply arrives on the Twilio webhook, resolves the
newest pending booking and the requester is told the outcome.

Inbound Twilio messages carry no reference to the prompt they answer, so a
reply always targets the most recently created pending booking. The status
change itself is conditional on the row still being pending.
"""
import logging

from starlette.concurrency import run_in_threadpool

from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from app.services.appointment_service import AppointmentStore
from app.services.sms_service import SmsSender

logger = logging.getLogger(__name__)


def build_approval_prompt(appointment: Appointment) -> str:
    return (
        "New appointment request:\n"
        f"Name: {appointment.name}\n"
        f"Phone: {appointment.phone}\n"
        f"Service: {appointment.service}\n"
        f"When: {appointment.date.isoformat()} at {appointment.time}\n"
        "Reply YES to approve or anything else to deny."
    )


def build_outcome_message(appointment: Appointment) -> str:
    when = f"{appointment.date.isoformat()} at {appointment.time}"
    if appointment.status == AppointmentStatus.approved:
        return f"Hi {appointment.name}, your {appointment.service} appointment on {when} is confirmed. See you then!"
    return (
        f"Hi {appointment.name}, sorry, we can't take your {appointment.service} appointment on {when}. "
        "Please book another time."
    )


def interpret_reply(body: str | None) -> AppointmentStatus:
    if (body or "").strip().lower() == "yes":
        return AppointmentStatus.approved
    return AppointmentStatus.denied


def same_phone(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return "".join(a.split()) == "".join(b.split())


async def notify(gateway: SmsSender, to_phone: str, body: str) -> str | None:
    """Send an SMS; failures are logged and swallowed so callers keep their state change."""
    try:
        return await run_in_threadpool(gateway.send, to_phone, body)
    except Exception as e:
        logger.exception("SMS notification to %s failed: %s", to_phone, e)
        return None


async def ensure_slot_free(store: AppointmentStore, data: AppointmentCreate) -> None:
    existing = await store.find_by_date_time(data.date, data.time)
    if existing:
        raise ConflictError("Slot already booked")


async def submit_appointment(
    store: AppointmentStore,
    gateway: SmsSender,
    data: AppointmentCreate,
    operator_phone: str,
) -> Appointment:
    await ensure_slot_free(store, data)
    appointment = await store.insert(data)
    # Persist before texting the operator so a prompt never refers to an unsaved booking
    await store.commit()
    logger.info(
        "Appointment %s created pending for %s %s", appointment.id, appointment.date, appointment.time
    )

    sid = await notify(gateway, operator_phone, build_approval_prompt(appointment))
    if sid:
        await store.set_message_sid(appointment.id, sid)
        appointment.message_sid = sid
    return appointment


async def resolve_reply(
    store: AppointmentStore,
    gateway: SmsSender,
    body: str | None,
    from_phone: str | None,
    operator_phone: str,
) -> Appointment:
    if not same_phone(from_phone, operator_phone):
        logger.warning("Rejected SMS reply from unauthorized sender %s", from_phone)
        raise ForbiddenError("Unauthorized sender")

    target = await store.find_pending_latest()
    if not target:
        raise NotFoundError("No pending appointment")

    new_status = interpret_reply(body)
    appointment = await store.update_status(target.id, new_status, expected=AppointmentStatus.pending)
    if not appointment:
        # Resolved by a concurrent reply between the read and the update
        raise NotFoundError("No pending appointment")
    await store.commit()
    logger.info("Appointment %s marked %s", appointment.id, appointment.status.value)

    await notify(gateway, appointment.phone, build_outcome_message(appointment))
    return appointment
