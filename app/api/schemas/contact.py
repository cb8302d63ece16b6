from pydantic import BaseModel, EmailStr, Field


class ContactRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str | None = None
    message: str = Field(min_length=1)


class ContactResponse(BaseModel):
    message: str
