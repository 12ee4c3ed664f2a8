"""
Settings for the mail relay.

This module reads the process environment once at startup and produces the
immutable configuration objects shared by the rest of the service:

- ServerBind: where the HTTP server listens and how many workers it runs
- SmtpConfig: how to reach the outbound SMTP server

Malformed values never abort startup; they fall back to the default for the
field and a warning is logged.
"""

import logging
import os

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_PORT = 3333
DEFAULT_SMTP_HOST = "localhost"
DEFAULT_SMTP_PORT = 25
DEFAULT_LOG_LEVEL = "DEBUG"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ServerBind(BaseModel):
    """HTTP server bind address, port and worker count."""

    model_config = ConfigDict(frozen=True)

    addr: str = DEFAULT_ADDRESS
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    workers: int = Field(default=1, ge=1)


class SmtpConfig(BaseModel):
    """
    Connection settings for the outbound SMTP server.

    Built once at startup and shared read-only by every request. The
    credentials are only used when both username and password are set.
    """

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_SMTP_HOST
    port: int = Field(default=DEFAULT_SMTP_PORT, ge=0, le=65535)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    use_tls: bool = False

    @property
    def credentials(self) -> tuple[str, str] | None:
        if self.username is not None and self.password is not None:
            return self.username, self.password
        return None


def init_logging():
    """Configure the root logger from LOG_LEVEL. Call once at startup."""
    level_name = os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _env_int(name: str, default: int, minimum: int = 0, maximum: int | None = None) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning("Invalid %s value '%s', using default %s", name, value, default)
        return default
    if parsed < minimum or (maximum is not None and parsed > maximum):
        logger.warning("Out of range %s value '%s', using default %s", name, value, default)
        return default
    return parsed


def _env_bool(name: str) -> bool | None:
    value = os.environ.get(name)
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    logger.warning("Invalid %s value '%s', ignoring it", name, value)
    return None


def build_server_bind() -> ServerBind:
    """
    Build the server bind configuration from the environment.

    Environment variables:
        BIND_ADDR: bind address (default: 0.0.0.0)
        BIND_PORT: listening port (default: 3333)
        BIND_WORKERS: number of worker processes (default: CPU count)

    Returns:
        ServerBind: the resolved bind settings
    """
    addr = os.environ.get("BIND_ADDR", DEFAULT_ADDRESS)
    port = _env_int("BIND_PORT", DEFAULT_PORT, maximum=65535)
    default_workers = os.cpu_count() or 1
    workers = _env_int("BIND_WORKERS", default_workers, minimum=1)
    return ServerBind(addr=addr, port=port, workers=workers)


def build_smtp_config() -> SmtpConfig:
    """
    Build the SMTP configuration from the environment.

    Environment variables:
        SMTP_HOST: SMTP server hostname or IP (default: localhost)
        SMTP_PORT: SMTP server port (default: 25)
        SMTP_USERNAME: authentication username (optional)
        SMTP_PASSWORD: authentication password (optional)
        SMTP_USE_TLS: use TLS (default: false for port 25, true otherwise)

    Returns:
        SmtpConfig: the resolved SMTP settings
    """
    host = os.environ.get("SMTP_HOST", DEFAULT_SMTP_HOST)
    port = _env_int("SMTP_PORT", DEFAULT_SMTP_PORT, maximum=65535)
    username = os.environ.get("SMTP_USERNAME")
    password = os.environ.get("SMTP_PASSWORD")

    # Plain SMTP on 25, TLS everywhere else unless overridden
    use_tls = _env_bool("SMTP_USE_TLS")
    if use_tls is None:
        use_tls = port != 25

    return SmtpConfig(
        host=host,
        port=port,
        username=username,
        password=password,
        use_tls=use_tls,
    )
