import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings

logger = logging.getLogger(__name__)


def _send_email_sync(to_email: str, subject: str, text_body: str, html_body: str, reply_to: str | None = None) -> None:
    """Send email via SMTP (blocking). Use from background task."""
    if not settings.email_enabled:
        logger.warning("Email disabled (SMTP not configured), dropped \"%s\" for %s", subject, to_email)
        return
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def build_contact_email(name: str, email: str, phone: str | None, message: str) -> tuple[str, str, str]:
    """Returns (subject, text_body, html_body) for a contact form submission."""
    subject = f"New Contact Form Submission from {name}"
    phone_display = phone or "Not provided"
    text_body = f"Name: {name}\nEmail: {email}\nPhone: {phone_display}\n\nMessage:\n{message}\n"
    safe_message = _html_escape(message).replace("\n", "<br>")
    html_body = f"""
<h2>New Contact Form Submission</h2>
<p><strong>Name:</strong> {_html_escape(name)}</p>
<p><strong>Email:</strong> {_html_escape(email)}</p>
<p><strong>Phone:</strong> {_html_escape(phone_display)}</p>
<h3>Message:</h3>
<p>{safe_message}</p>
"""
    return subject, text_body, html_body


def send_contact_email(name: str, email: str, phone: str | None, message: str) -> None:
    """Forward a contact form submission to the salon inbox (call from background task)."""
    to_email = settings.contact_inbox or settings.from_email
    if not to_email:
        logger.warning("Contact form received but no CONTACT_INBOX/FROM_EMAIL configured")
        return
    subject, text_body, html_body = build_contact_email(name, email, phone, message)
    _send_email_sync(to_email, subject, text_body, html_body, reply_to=email)
