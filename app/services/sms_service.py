"""Outbound SMS through Twilio and the TwiML acknowledgment for inbound replies."""
import logging
from typing import Protocol

from twilio.base.exceptions import TwilioException
from twilio.rest import Client
from twilio.twiml.messaging_response import MessagingResponse

from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class SmsSender(Protocol):
    def send(self, to_phone: str, body: str) -> str: ...


class TwilioSmsGateway:
    def __init__(self, account_sid: str, auth_token: str, from_number: str) -> None:
        self.client = Client(account_sid, auth_token)
        self.from_number = from_number

    def send(self, to_phone: str, body: str) -> str:
        """Send one SMS (blocking) and return the Twilio message SID."""
        try:
            message = self.client.messages.create(
                body=body,
                from_=self.from_number,
                to=to_phone,
            )
        except TwilioException as e:
            logger.error("Twilio error sending SMS to %s: %s", to_phone, e)
            raise UpstreamError(f"Twilio send failed: {e}") from e
        except Exception as e:
            # Connection errors come from the HTTP client, not as TwilioException
            logger.error("SMS transport error to %s: %s", to_phone, e)
            raise UpstreamError(f"SMS transport failed: {e}") from e
        logger.info("SMS sent to %s: %s", to_phone, message.sid)
        return message.sid


def twiml_reply(text: str | None = None) -> str:
    resp = MessagingResponse()
    if text:
        resp.message(text)
    return str(resp)
