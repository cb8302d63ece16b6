import datetime as dt
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, UpstreamError
from app.models.appointment import Appointment, AppointmentCreate, AppointmentStatus

logger = logging.getLogger(__name__)


class AppointmentStore:
    """Appointment persistence on one request-scoped session.

    Methods flush; ``get_session`` commits when the request finishes, and
    callers use ``commit`` where a step must be durable before a side effect.
    Driver errors are re-raised as ``UpstreamError``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, data: AppointmentCreate) -> Appointment:
        appointment = Appointment.model_validate(data)
        self.session.add(appointment)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost the race against a concurrent booking of the same slot
            await self.session.rollback()
            raise ConflictError("Slot already booked") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Insert appointment failed: %s", e)
            raise UpstreamError(str(e)) from e
        await self.session.refresh(appointment)
        return appointment

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Commit failed: %s", e)
            raise UpstreamError(str(e)) from e

    async def get(self, appointment_id: int) -> Appointment | None:
        try:
            return await self.session.get(Appointment, appointment_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise UpstreamError(str(e)) from e

    async def find_by_date_time(self, date: dt.date, time: str) -> Appointment | None:
        q = select(Appointment).where(Appointment.date == date, Appointment.time == time).limit(1)
        return await self._first(q)

    async def find_pending_latest(self) -> Appointment | None:
        q = (
            select(Appointment)
            .where(Appointment.status == AppointmentStatus.pending)
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .limit(1)
        )
        return await self._first(q)

    async def set_message_sid(self, appointment_id: int, message_sid: str) -> None:
        try:
            await self.session.execute(
                update(Appointment).where(Appointment.id == appointment_id).values(message_sid=message_sid)
            )
            await self.session.flush()
        except SQLAlchemyError as e:
            raise UpstreamError(str(e)) from e

    async def update_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        expected: AppointmentStatus | None = AppointmentStatus.pending,
    ) -> Appointment | None:
        """Set status; when ``expected`` is given only rows still in that status change.

        Returns the updated row, or None if nothing matched.
        """
        stmt = update(Appointment).where(Appointment.id == appointment_id)
        if expected is not None:
            stmt = stmt.where(Appointment.status == expected)
        try:
            result = await self.session.execute(stmt.values(status=status))
            await self.session.flush()
        except SQLAlchemyError as e:
            raise UpstreamError(str(e)) from e
        if not result.rowcount:
            return None
        return await self.get(appointment_id)

    async def list_all(self) -> list[Appointment]:
        q = select(Appointment).order_by(Appointment.date, Appointment.time)
        return await self._all(q)

    async def list_for_date(self, date: dt.date) -> list[Appointment]:
        q = select(Appointment).where(Appointment.date == date).order_by(Appointment.time)
        return await self._all(q)

    async def delete(self, appointment_id: int) -> bool:
        try:
            result = await self.session.execute(delete(Appointment).where(Appointment.id == appointment_id))
            await self.session.flush()
        except SQLAlchemyError as e:
            raise UpstreamError(str(e)) from e
        return bool(result.rowcount)

    async def _first(self, q) -> Appointment | None:
        try:
            result = await self.session.execute(q)
        except SQLAlchemyError as e:
            raise UpstreamError(str(e)) from e
        return result.scalars().first()

    async def _all(self, q) -> list[Appointment]:
        try:
            result = await self.session.execute(q)
        except SQLAlchemyError as e:
            raise UpstreamError(str(e)) from e
        return list(result.scalars().all())
