"""Shared pytest fixtures: environment isolation and a local SMTP server."""

import socket
from email import message_from_bytes, policy
from typing import Any

import pytest
from aiosmtpd.controller import Controller

RELAY_ENV_VARS = (
    "BIND_ADDR",
    "BIND_PORT",
    "BIND_WORKERS",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SMTP_USE_TLS",
    "LOG_LEVEL",
)


def get_free_port() -> int:
    """Find a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


class CapturingHandler:
    """SMTP handler that captures received messages or rejects them all."""

    def __init__(self):
        self.messages: list[dict[str, Any]] = []
        self.reject_code: int | None = None
        self.reject_message = "Mailbox unavailable"

    async def handle_DATA(self, server, session, envelope):
        """Handle DATA command - capture the message."""
        if self.reject_code is not None:
            return f"{self.reject_code} {self.reject_message}"

        self.messages.append({
            "from": envelope.mail_from,
            "to": list(envelope.rcpt_tos),
            "message": message_from_bytes(envelope.content, policy=policy.default),
        })
        return "250 Message accepted for delivery"


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the relay reads so defaults apply."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def smtp_server():
    """Run an aiosmtpd server on a free local port for the duration of a test."""
    handler = CapturingHandler()
    port = get_free_port()
    controller = Controller(handler, hostname="127.0.0.1", port=port)
    controller.start()
    try:
        yield handler, port
    finally:
        controller.stop()
