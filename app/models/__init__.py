from app.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentCreated,
    AppointmentPublic,
    AppointmentSlot,
    AppointmentStatus,
)

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentCreated",
    "AppointmentPublic",
    "AppointmentSlot",
    "AppointmentStatus",
]
