import logging
from typing import Optional

from twilio.rest import Client

from meetwhen.core.config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER

logger = logging.getLogger(__name__)


class TwilioClient:
    def __init__(
        self,
        account_sid: Optional[str] = TWILIO_ACCOUNT_SID,
        auth_token: Optional[str] = TWILIO_AUTH_TOKEN,
        phone_number: Optional[str] = TWILIO_PHONE_NUMBER,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.phone_number = phone_number
        self._client: Optional[Client] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.phone_number)

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send_sms(self, to: str, message: str, from_: str | None = None):
        """Send an SMS to the specified phone number"""
        from_number = from_ or self.phone_number
        if not from_number:
            raise ValueError("Missing Twilio from number for SMS.")
        return self.client.messages.create(to=to, from_=from_number, body=message)


# Initialize the client; credentials are only used on the first send
twilio_client = TwilioClient()
