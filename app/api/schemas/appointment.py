import datetime as dt

from pydantic import AliasChoices, BaseModel, Field, field_validator

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BookAppointmentRequest(BaseModel):
    # Older booking form posts the requester as "client"
    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "client"))
    phone: str = Field(min_length=1)
    service: str = Field(min_length=1)
    date: str = Field(pattern=DATE_PATTERN)  # YYYY-MM-DD
    time: str = Field(pattern=TIME_PATTERN)  # HH:MM, 24h

    @field_validator("name", "phone", "service")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("date")
    @classmethod
    def _real_date(cls, value: str) -> str:
        dt.date.fromisoformat(value)
        return value

    @property
    def parsed_date(self) -> dt.date:
        return dt.date.fromisoformat(self.date)
