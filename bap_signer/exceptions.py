"""
Error taxonomy for the BAP signing subsystem.

Startup errors (KeyNotFoundError, KeyFormatError) are fatal: the process
cannot sign anything without a key. Per-request errors (SerializationError,
SigningError, SubscriberIdError) are raised to the caller of that request only.
"""


class BecknSignerError(Exception):
    """Base class for all signer errors"""


class KeyNotFoundError(BecknSignerError):
    """No private key file at the expected location"""


class KeyFormatError(BecknSignerError):
    """Key material could not be parsed or is not Ed25519"""


class KeyExistsError(BecknSignerError):
    """Refused to overwrite an existing private key"""


class SerializationError(BecknSignerError):
    """Payload cannot be canonically serialized"""


class SigningError(BecknSignerError):
    """The Ed25519 signing operation failed"""


class SubscriberIdError(BecknSignerError, ValueError):
    """Subscriber id cannot be placed inside a quoted header value"""


class GatewayError(BecknSignerError):
    """The gateway rejected the request or could not be reached"""

    def __init__(self, message: str, status_code: int = 0, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def validate_subscriber_id(subscriber_id: str) -> str:
    """
    Check that a subscriber id can be embedded in keyId="..." as-is.

    Accepts printable ASCII without double quotes or backslashes.
    Returns the value unchanged so it can be used as a validator.
    """
    if not isinstance(subscriber_id, str) or not subscriber_id:
        raise SubscriberIdError("Subscriber id must be a non-empty string")
    for ch in subscriber_id:
        if ch in ('"', "\\"):
            raise SubscriberIdError(f"Subscriber id must not contain {ch!r}: {subscriber_id!r}")
        if not (0x20 <= ord(ch) < 0x7f):
            raise SubscriberIdError(f"Subscriber id must be printable ASCII: {subscriber_id!r}")
    return subscriber_id
