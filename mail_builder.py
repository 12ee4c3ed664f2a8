"""
Turns a validated send request into an email message ready for SMTP.

The builder decodes the body according to the declared encoding, parses the
sender and every recipient as a mailbox, and assembles an EmailMessage. Any
failure raises a ValidationError subclass before anything is sent.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from email import policy
from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

import email_validator
from email_validator import EmailNotValidError, validate_email

import kinds
from errors import AddressError, EncodingError, MessageBuildError

logger = logging.getLogger(__name__)

BASE64_ENCODING = "base64"

_NAME_ADDR_RE = re.compile(r"^(?P<name>[^<>]*)<(?P<addr>[^<>]*)>$")

# Reserved names such as localhost, .local and .test are valid mailbox syntax
email_validator.SPECIAL_USE_DOMAIN_NAMES.clear()


@dataclass(frozen=True)
class OutboundMessage:
    """A built message together with the SMTP envelope it is sent with."""

    sender: Address
    recipients: tuple[Address, ...]
    subject: str
    body: str
    message: EmailMessage

    @property
    def envelope_from(self) -> str:
        return self.sender.addr_spec

    @property
    def envelope_to(self) -> list[str]:
        return [recipient.addr_spec for recipient in self.recipients]


def decode_text(text: str, encoding: str) -> str:
    """
    Resolve the body text for the declared encoding.

    Only "base64" triggers decoding; every other value, recognized or not,
    leaves the text untouched.

    Raises:
        EncodingError: if the text is not standard base64 or does not
            decode to UTF-8
    """
    if encoding != BASE64_ENCODING:
        return text

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(encoding, str(e)) from e

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(encoding, f"decoded bytes are not UTF-8 ({e.reason})") from e


def parse_mailbox(value: str) -> Address:
    """
    Parse a mailbox, either a bare address or "Display Name <address>".

    Raises:
        AddressError: if the address part is not a valid email address
    """
    candidate = value.strip()
    display_name = ""
    match = _NAME_ADDR_RE.match(candidate)
    if match:
        display_name = match.group("name").strip().strip('"').strip()
        candidate = match.group("addr").strip()

    try:
        validated = validate_email(
            candidate,
            check_deliverability=False,
            globally_deliverable=False,
            allow_domain_literal=True,
        )
    except EmailNotValidError as e:
        raise AddressError(value, str(e)) from e

    try:
        return Address(display_name=display_name, addr_spec=validated.normalized)
    except ValueError as e:
        raise AddressError(value, str(e)) from e


def build_message(payload: kinds.SendMailPayload) -> OutboundMessage:
    """
    Build the outbound message for a send request.

    Args:
        payload: The mail section of the send request

    Returns:
        OutboundMessage: the message and its envelope

    Raises:
        EncodingError: if the body cannot be decoded
        AddressError: if the sender or any recipient is not a valid mailbox
        MessageBuildError: if the message cannot be assembled, including the
            case of an empty recipient list
    """
    body = decode_text(payload.text, payload.encoding)
    logger.debug(body)

    sender = parse_mailbox(payload.from_)
    recipients = tuple(parse_mailbox(address) for address in payload.to)

    message = EmailMessage(policy=policy.SMTP)
    try:
        message["From"] = sender
        if recipients:
            message["To"] = recipients
        message["Subject"] = payload.subject
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid(domain=sender.domain or None)
        message.set_content(body)
    except (ValueError, TypeError) as e:
        raise MessageBuildError(f"cannot build message: {e}") from e

    # The SMTP envelope needs at least one RCPT TO
    if not message["To"]:
        raise MessageBuildError("missing destination address")

    return OutboundMessage(
        sender=sender,
        recipients=recipients,
        subject=payload.subject,
        body=body,
        message=message,
    )
