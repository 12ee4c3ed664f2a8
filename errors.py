"""
Error types raised while turning a send request into a delivered email.

Every error is terminal for the request that raised it. The HTTP layer maps
all of them to the same JSON error envelope using str(error) as the message.
"""


class RelayError(Exception):
    """Base class for every failure of the send pipeline."""


class ValidationError(RelayError):
    """The request payload cannot be turned into an email message."""


class AddressError(ValidationError):
    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid email address '{address}': {reason}")


class EncodingError(ValidationError):
    def __init__(self, encoding: str, reason: str):
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"Invalid {encoding} text: {reason}")


class MessageBuildError(ValidationError):
    pass


class TransportError(RelayError):
    """The SMTP transport cannot be configured."""


class InvalidHostError(TransportError):
    def __init__(self, host: str):
        self.host = host
        super().__init__(f"Invalid SMTP relay host '{host}'")


class DeliveryError(RelayError):
    """The SMTP server could not be reached or refused the message."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"SMTP delivery failed: {detail}")
