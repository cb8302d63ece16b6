from fastapi import APIRouter, BackgroundTasks

from app.api.schemas.contact import ContactRequest, ContactResponse
from app.services.email_service import send_contact_email

router = APIRouter(tags=["contact"])


@router.post("/contact", response_model=ContactResponse)
async def contact(body: ContactRequest, background_tasks: BackgroundTasks) -> ContactResponse:
    # Sent in background (uses sync SMTP)
    background_tasks.add_task(
        send_contact_email,
        name=body.name,
        email=body.email,
        phone=body.phone,
        message=body.message,
    )
    return ContactResponse(message="Thank you for your message. We'll get back to you soon!")
