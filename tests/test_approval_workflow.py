"""
Approval workflow: submission, operator SMS prompt, inbound reply, outcome SMS.
Runs the services directly against the in-memory store.
"""

import datetime as dt

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, UpstreamError
from app.models.appointment import AppointmentCreate, AppointmentStatus
from app.services.approval_service import (
    build_approval_prompt,
    interpret_reply,
    resolve_reply,
    same_phone,
    submit_appointment,
)

from .conftest import OPERATOR_PHONE, FakeSmsGateway


def make_data(date="2024-06-01", time="10:00", name="A", phone="+1555"):
    return AppointmentCreate(
        name=name, phone=phone, service="Cut", date=dt.date.fromisoformat(date), time=time
    )


@pytest.mark.parametrize("body", ["YES", "yes", " Yes ", "yEs\n"])
def test_interpret_reply_yes_approves(body):
    assert interpret_reply(body) == AppointmentStatus.approved


@pytest.mark.parametrize("body", ["no", "maybe", "", None, "yes please", "y"])
def test_interpret_reply_anything_else_denies(body):
    assert interpret_reply(body) == AppointmentStatus.denied


def test_same_phone_ignores_whitespace_only():
    assert same_phone("+1 555 0001111", "+15550001111")
    assert not same_phone("+15550002222", "+15550001111")
    assert not same_phone(None, "+15550001111")


async def test_submit_creates_pending_and_prompts_operator(store, gateway):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)

    assert appointment.id is not None
    assert appointment.status == AppointmentStatus.pending
    assert appointment.created_at is not None
    prompts = gateway.sent_to(OPERATOR_PHONE)
    assert len(prompts) == 1
    assert "Reply YES" in prompts[0]
    assert "2024-06-01 at 10:00" in prompts[0]

    stored = await store.get(appointment.id)
    assert stored.message_sid == appointment.message_sid
    assert stored.message_sid.startswith("SM")


async def test_distinct_slots_get_distinct_ids(store, gateway):
    slots = [("2024-06-01", "10:00"), ("2024-06-01", "10:30"), ("2024-06-02", "10:00")]
    ids = set()
    for date, time in slots:
        appointment = await submit_appointment(store, gateway, make_data(date, time), OPERATOR_PHONE)
        assert appointment.status == AppointmentStatus.pending
        ids.add(appointment.id)
    assert len(ids) == len(slots)


async def test_same_slot_twice_conflicts_without_second_record(store, gateway):
    await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)

    with pytest.raises(ConflictError):
        await submit_appointment(store, gateway, make_data(name="B", phone="+1666"), OPERATOR_PHONE)

    on_day = await store.list_for_date(dt.date(2024, 6, 1))
    assert [a.name for a in on_day] == ["A"]
    assert len(gateway.sent) == 1


async def test_insert_race_surfaces_as_conflict(store):
    # Bypasses the pre-check; the unique (date, time) constraint still holds
    await store.insert(make_data())
    with pytest.raises(ConflictError):
        await store.insert(make_data(name="B"))


async def test_gateway_failure_keeps_created_appointment(store, gateway):
    gateway.fail = True
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)

    stored = await store.get(appointment.id)
    assert stored.status == AppointmentStatus.pending
    assert stored.message_sid is None


async def test_reread_before_reply_stays_pending(store, gateway):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)
    for _ in range(3):
        assert (await store.get(appointment.id)).status == AppointmentStatus.pending


@pytest.mark.parametrize(
    "body, expected",
    [
        ("YES", AppointmentStatus.approved),
        (" Yes ", AppointmentStatus.approved),
        ("no", AppointmentStatus.denied),
        ("", AppointmentStatus.denied),
    ],
)
async def test_reply_resolves_pending_and_notifies_requester(store, gateway, body, expected):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)

    resolved = await resolve_reply(store, gateway, body, OPERATOR_PHONE, OPERATOR_PHONE)

    assert resolved.id == appointment.id
    assert resolved.status == expected
    assert (await store.get(appointment.id)).status == expected
    outcome = gateway.sent_to("+1555")
    assert len(outcome) == 1
    assert ("confirmed" in outcome[0]) == (expected == AppointmentStatus.approved)


async def test_reply_from_other_sender_is_rejected(store, gateway):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)

    with pytest.raises(ForbiddenError):
        await resolve_reply(store, gateway, "YES", "+19998887777", OPERATOR_PHONE)

    assert (await store.get(appointment.id)).status == AppointmentStatus.pending
    assert gateway.sent_to("+1555") == []


async def test_reply_with_nothing_pending_is_not_found(store, gateway):
    with pytest.raises(NotFoundError):
        await resolve_reply(store, gateway, "YES", OPERATOR_PHONE, OPERATOR_PHONE)
    assert gateway.sent == []


async def test_reply_targets_newest_pending(store, gateway):
    older = await submit_appointment(store, gateway, make_data(time="09:00", name="Old", phone="+1001"), OPERATOR_PHONE)
    newer = await submit_appointment(store, gateway, make_data(time="11:00", name="New", phone="+1002"), OPERATOR_PHONE)

    resolved = await resolve_reply(store, gateway, "yes", OPERATOR_PHONE, OPERATOR_PHONE)

    assert resolved.id == newer.id
    assert (await store.get(older.id)).status == AppointmentStatus.pending
    # The next reply falls through to the older one
    second = await resolve_reply(store, gateway, "no", OPERATOR_PHONE, OPERATOR_PHONE)
    assert second.id == older.id
    assert second.status == AppointmentStatus.denied


async def test_resolved_appointment_is_not_resolved_again(store, gateway):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)
    await resolve_reply(store, gateway, "YES", OPERATOR_PHONE, OPERATOR_PHONE)

    assert await store.update_status(appointment.id, AppointmentStatus.denied) is None
    with pytest.raises(NotFoundError):
        await resolve_reply(store, gateway, "no", OPERATOR_PHONE, OPERATOR_PHONE)
    assert (await store.get(appointment.id)).status == AppointmentStatus.approved


async def test_outcome_send_failure_keeps_status_change(store, gateway):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)
    gateway.fail = True

    resolved = await resolve_reply(store, gateway, "YES", OPERATOR_PHONE, OPERATOR_PHONE)

    assert resolved.status == AppointmentStatus.approved
    assert (await store.get(appointment.id)).status == AppointmentStatus.approved


async def test_prompt_lists_requester_details(store):
    appointment = await store.insert(make_data(name="Dana", phone="+1777"))
    prompt = build_approval_prompt(appointment)
    assert "Name: Dana" in prompt
    assert "Phone: +1777" in prompt
    assert "Service: Cut" in prompt


class BrokenSocketGateway:
    def send(self, to_phone, body):
        raise RuntimeError("socket closed")


class TransactionCheckingGateway(FakeSmsGateway):
    """Notes whether the store still had uncommitted work when each SMS went out."""

    def __init__(self, store):
        super().__init__()
        self.store = store
        self.open_transaction = []

    def send(self, to_phone, body):
        self.open_transaction.append(self.store.session.in_transaction())
        return super().send(to_phone, body)


async def test_unexpected_gateway_error_keeps_created_appointment(store):
    appointment = await submit_appointment(store, BrokenSocketGateway(), make_data(), OPERATOR_PHONE)

    stored = await store.get(appointment.id)
    assert stored.status == AppointmentStatus.pending
    assert stored.message_sid is None


async def test_unexpected_gateway_error_keeps_status_change(store, gateway):
    appointment = await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)

    resolved = await resolve_reply(store, BrokenSocketGateway(), "YES", OPERATOR_PHONE, OPERATOR_PHONE)

    assert resolved.status == AppointmentStatus.approved
    assert (await store.get(appointment.id)).status == AppointmentStatus.approved


async def test_booking_is_committed_before_operator_is_texted(store):
    gateway = TransactionCheckingGateway(store)

    await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)
    await resolve_reply(store, gateway, "YES", OPERATOR_PHONE, OPERATOR_PHONE)

    assert gateway.open_transaction == [False, False]


async def test_failed_commit_sends_no_prompt(store, gateway, monkeypatch):
    async def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(store.session, "commit", failing_commit)

    with pytest.raises(UpstreamError):
        await submit_appointment(store, gateway, make_data(), OPERATOR_PHONE)
    assert gateway.sent == []
