import asyncio
import logging
from typing import Protocol

from firebase_admin import exceptions, messaging
from firebase_admin.exceptions import FirebaseError

logger = logging.getLogger(__name__)

INVALID_REGISTRATION_TOKEN = "messaging/invalid-registration-token"
REGISTRATION_TOKEN_NOT_REGISTERED = "messaging/registration-token-not-registered"
UNKNOWN_ERROR = "messaging/unknown-error"

# Delivery error codes meaning the device token will never work again.
INVALID_TOKEN_CODES = frozenset(
    {INVALID_REGISTRATION_TOKEN, REGISTRATION_TOKEN_NOT_REGISTERED}
)


class PushDeliveryError(Exception):
    """A push send that the transport rejected, tagged with a machine-readable code."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def is_invalid_token(self) -> bool:
        return self.code in INVALID_TOKEN_CODES


class PushTransport(Protocol):
    """Sends one message and returns the provider's message id."""

    async def send(self, message: messaging.Message) -> str: ...


def _error_code(error: Exception) -> str:
    if isinstance(error, messaging.UnregisteredError):
        return REGISTRATION_TOKEN_NOT_REGISTERED
    if isinstance(error, exceptions.InvalidArgumentError) and (
        "registration token" in str(error).lower()
    ):
        return INVALID_REGISTRATION_TOKEN
    if isinstance(error, FirebaseError) and error.code:
        return "messaging/" + str(error.code).lower().replace("_", "-")
    return UNKNOWN_ERROR


class FCMPushTransport(PushTransport):
    """Firebase Cloud Messaging through the initialized Firebase Admin app."""

    def __init__(self, app=None):
        self._app = app

    async def send(self, message: messaging.Message) -> str:
        try:
            # messaging.send is a blocking call, so run it in a separate thread
            return await asyncio.to_thread(messaging.send, message, app=self._app)
        except Exception as e:
            code = _error_code(e)
            logger.debug(f"FCM send failed with {code}: {e}")
            raise PushDeliveryError(code, str(e)) from e
