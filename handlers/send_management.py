"""
Mail sending API handlers.

This module contains the endpoint that relays an email described in JSON to
the configured SMTP server. Failures are raised as RelayError subclasses and
turned into the JSON error envelope by the application's exception handler.
"""

import logging

from fastapi import APIRouter, Request

import kinds
import mail_builder
import smtp_transport
from handlers.dependencies import SmtpConfigDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Mail"])


@router.post("/send", status_code=200, response_model=kinds.MailResponse)
def send(body: kinds.SendMailRequest, request: Request, smtp_config: SmtpConfigDep):
    """
    Send an email through the configured SMTP server.

    The text is used as-is for the "plain" encoding (and any unrecognized
    encoding) and base64 decoded for "base64". A new SMTP transport is built
    for every request; nothing is queued or retried.

    Args:
        body: Request containing the mail to send
        smtp_config: Process-wide SMTP settings

    Returns:
        MailResponse: ok status and the list of recipients

    Raises:
        ValidationError: If an address or the encoded text is invalid
        TransportError: If the TLS relay host is not a valid server name
        DeliveryError: If the SMTP server cannot be reached or rejects the mail

    Example:
        POST /send
        {"mail": {"from": "a@x.com", "to": ["b@y.com"], "subject": "s",
                  "text": "aGVsbG8=", "encoding": "base64"}}
        Returns: {"status": "ok", "message": "Mail sent to b@y.com"}
    """
    host = request.headers.get("host")
    if host:
        logger.info("send request from host %s", host)
    else:
        logger.info("No host header found in the request")

    payload = body.mail

    message = mail_builder.build_message(payload)
    transport = smtp_transport.select_transport(smtp_config)
    smtp_transport.dispatch(message, transport)

    result = f"Mail sent to {', '.join(payload.to)}"
    logger.info(result)
    return kinds.MailResponse(status=kinds.Status.OK, message=result)
