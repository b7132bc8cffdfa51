"""
Notifier gateway: delivers verification codes by email or SMS.

The account flow depends only on `NotificationGateway.send_verification_code`.
Concrete transports implement `Notifier.send(destination, subject, message)`
and raise `NotifierError` on delivery failure. The gateway bounds every
attempt with a timeout and retries with exponential back-off; what is left
after the last attempt surfaces as `NotifierTimeout` or `NotifierFailure`.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum as PyEnum

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail as SendGridMail
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from twilio.rest import Client as TwilioClient

from almond.core.config import Settings
from almond.core.i18n import translate
from almond.core.logging import get_logger
from almond.exceptions.http import NotifierFailure, NotifierTimeout

logger = get_logger(__name__)


class Channel(str, PyEnum):
    EMAIL = "email"
    SMS = "sms"


class NotifierError(RuntimeError):
    """Raised by a transport when a message could not be delivered."""


class Notifier(ABC):
    @abstractmethod
    async def send(self, destination: str, subject: str, message: str) -> None: ...


class LoggingNotifier(Notifier):
    """Development transport: writes the message to the log instead of delivering it."""

    def __init__(self, channel: Channel):
        self.channel = channel

    async def send(self, destination: str, subject: str, message: str) -> None:
        logger.warning(
            "[%s not configured] to=%s subject=%r message=%r", self.channel.value, destination, subject, message
        )


class SendGridEmailNotifier(Notifier):
    def __init__(self, api_key: str, from_email: str):
        self._client = SendGridAPIClient(api_key)
        self._from_email = from_email

    async def send(self, destination: str, subject: str, message: str) -> None:
        mail = SendGridMail(
            from_email=self._from_email,
            to_emails=destination,
            subject=subject,
            plain_text_content=message,
        )
        try:
            # The SendGrid client is blocking; keep it off the event loop.
            response = await asyncio.to_thread(self._client.send, mail)
        except Exception as exc:
            raise NotifierError(f"SendGrid delivery to {destination} failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotifierError(f"SendGrid rejected message to {destination}: HTTP {response.status_code}")
        logger.info("Email sent to %s, status: %s", destination, response.status_code)


class TwilioSmsNotifier(Notifier):
    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self._client = TwilioClient(account_sid, auth_token)
        self._from_number = from_number

    async def send(self, destination: str, subject: str, message: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.messages.create, to=destination, from_=self._from_number, body=message
            )
        except Exception as exc:
            raise NotifierError(f"Twilio delivery to {destination} failed: {exc}") from exc
        logger.info("SMS sent to %s", destination)


def build_email_notifier(settings: Settings) -> Notifier:
    if settings.SENDGRID_API_KEY and settings.MAIL_FROM_EMAIL:
        return SendGridEmailNotifier(settings.SENDGRID_API_KEY, settings.MAIL_FROM_EMAIL)
    return LoggingNotifier(Channel.EMAIL)


def build_sms_notifier(settings: Settings) -> Notifier:
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER:
        return TwilioSmsNotifier(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER)
    return LoggingNotifier(Channel.SMS)


class NotificationGateway:
    def __init__(
        self,
        email: Notifier,
        sms: Notifier,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        sms_prefix: str = "",
    ):
        self._notifiers = {Channel.EMAIL: email, Channel.SMS: sms}
        self._timeout = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds
        self._sms_prefix = sms_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationGateway":
        return cls(
            email=build_email_notifier(settings),
            sms=build_sms_notifier(settings),
            timeout_seconds=settings.NOTIFIER_TIMEOUT_SECONDS,
            max_attempts=settings.NOTIFIER_MAX_ATTEMPTS,
            backoff_seconds=settings.NOTIFIER_BACKOFF_SECONDS,
            sms_prefix=settings.SMS_DIALING_PREFIX,
        )

    async def send_verification_code(self, channel: Channel, destination: str, code: int, locale: str) -> None:
        subject = translate("verification_subject", locale)
        message = translate("verification_text", locale) + str(code)
        if channel is Channel.SMS:
            destination = f"{self._sms_prefix}{destination}"
        await self.dispatch(channel, destination, subject, message)

    async def dispatch(self, channel: Channel, destination: str, subject: str, message: str) -> None:
        notifier = self._notifiers[channel]
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._backoff, max=10),
                retry=retry_if_exception_type((NotifierError, TimeoutError)),
                reraise=True,
            ):
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if number > 1:
                        logger.warning("Retrying %s delivery to %s (attempt %d)", channel.value, destination, number)
                    await asyncio.wait_for(notifier.send(destination, subject, message), timeout=self._timeout)
        except TimeoutError as exc:
            logger.error(
                "%s delivery to %s timed out after %d attempts", channel.value, destination, self._max_attempts
            )
            raise NotifierTimeout() from exc
        except NotifierError as exc:
            logger.error("%s delivery to %s failed: %s", channel.value, destination, exc)
            raise NotifierFailure() from exc
