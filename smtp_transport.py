"""
SMTP transports and delivery.

select_transport() turns the process-wide SmtpConfig into a transport for a
single request without touching the network. dispatch() performs one send
attempt over that transport and converts every SMTP or network failure into
a DeliveryError.
"""

import ipaddress
import logging
import re
import smtplib
import ssl
from enum import Enum

from errors import DeliveryError, InvalidHostError
from mail_builder import OutboundMessage
from settings import SmtpConfig

logger = logging.getLogger(__name__)

# Connect and socket timeout in seconds for every SMTP session
DEFAULT_TIMEOUT = 60
IMPLICIT_TLS_PORT = 465

_HOST_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


class TlsMode(str, Enum):
    NONE = "none"
    STARTTLS = "starttls"
    IMPLICIT = "implicit"


class SmtpTransport:
    """
    One-shot SMTP channel: host, port, encryption mode and credentials.

    The connection is opened lazily by send() and closed when the send
    completes, so a transport never holds a socket between calls.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        tls_mode: TlsMode = TlsMode.NONE,
        credentials: tuple[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.tls_mode = tls_mode
        self.credentials = credentials
        self.timeout = timeout

    def __repr__(self):
        return (
            f"SmtpTransport(host={self.host!r}, port={self.port}, "
            f"tls_mode={self.tls_mode.value}, authenticated={self.credentials is not None})"
        )

    def _open(self) -> smtplib.SMTP:
        logger.debug("Connecting to %s:%s (tls: %s)", self.host, self.port, self.tls_mode.value)
        if self.tls_mode == TlsMode.IMPLICIT:
            return smtplib.SMTP_SSL(
                self.host,
                self.port,
                timeout=self.timeout,
                context=ssl.create_default_context(),
            )
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def send(self, message: OutboundMessage) -> dict:
        """
        Deliver a message and return the recipients refused by the server.

        smtplib and socket errors propagate unchanged.
        """
        with self._open() as smtp:
            if self.tls_mode == TlsMode.STARTTLS:
                smtp.ehlo()
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            if self.credentials is not None:
                smtp.login(*self.credentials)
            return smtp.send_message(
                message.message,
                from_addr=message.envelope_from,
                to_addrs=message.envelope_to,
            )


def is_valid_tls_host(host: str) -> bool:
    """Check that host can be used as a TLS server name (hostname or IP)."""
    if not host:
        return False
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass

    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return False

    ascii_host = ascii_host.rstrip(".")
    if not ascii_host or len(ascii_host) > 253:
        return False
    return all(_HOST_LABEL_RE.match(label) for label in ascii_host.split("."))


def select_transport(config: SmtpConfig) -> SmtpTransport:
    """
    Build the transport described by the SMTP configuration.

    With use_tls the transport is a relay: implicit TLS on port 465, STARTTLS
    on any other port, and the host must be a valid TLS server name. Without
    use_tls the connection is unencrypted. Credentials are attached in both
    modes when both username and password are configured.

    Unlike relays that wrap every port in TLS, only port 465 uses implicit TLS.

    Raises:
        InvalidHostError: if use_tls is set and the host is not a valid
            TLS server name
    """
    if config.use_tls:
        if not is_valid_tls_host(config.host):
            raise InvalidHostError(config.host)
        if config.port == IMPLICIT_TLS_PORT:
            tls_mode = TlsMode.IMPLICIT
        else:
            tls_mode = TlsMode.STARTTLS
    else:
        tls_mode = TlsMode.NONE

    return SmtpTransport(
        config.host,
        config.port,
        tls_mode=tls_mode,
        credentials=config.credentials,
    )


def _smtp_reply(code, message) -> str:
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    return f"{code} {message}".strip()


def describe_smtp_error(error: Exception) -> str:
    """Render an smtplib or socket error, keeping the server's reply."""
    if isinstance(error, smtplib.SMTPRecipientsRefused):
        return "; ".join(
            f"{address}: {_smtp_reply(code, reply)}"
            for address, (code, reply) in error.recipients.items()
        )
    if isinstance(error, smtplib.SMTPResponseException):
        return _smtp_reply(error.smtp_code, error.smtp_error)
    return str(error) or type(error).__name__


def dispatch(message: OutboundMessage, transport: SmtpTransport) -> None:
    """
    Send a message with a single attempt.

    Raises:
        DeliveryError: on any network, TLS, authentication or SMTP failure,
            including recipients refused by the server
    """
    try:
        refused = transport.send(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Sending mail via %s failed: %s", transport, e)
        raise DeliveryError(describe_smtp_error(e)) from e

    if refused:
        error = smtplib.SMTPRecipientsRefused(refused)
        logger.error("SMTP server refused recipients: %s", refused)
        raise DeliveryError(describe_smtp_error(error))
