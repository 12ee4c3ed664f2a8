import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import kinds
from errors import RelayError
from handlers import health
from handlers import send_management
from settings import SmtpConfig, build_smtp_config, init_logging

logger = logging.getLogger(__name__)

api_description = """
Relay emails described as JSON to an SMTP server.

## Endpoints

- `GET /`, `HEAD /` - health check
- `POST /send` - send a mail, optionally with a base64 encoded body

Every response uses the same envelope: `{"status": "ok"|"fail"|"error", "message": "..."}`.
"""


def json_error(status_code: int, message: str, status: kinds.Status = kinds.Status.ERROR) -> JSONResponse:
    """Build the JSON error envelope returned for every failure."""
    body = kinds.MailResponse(status=status, message=message)
    return JSONResponse(content=body.model_dump(mode="json"), status_code=status_code)


async def relay_error_handler(_: Request, exc: RelayError):
    """Handle validation, transport and delivery failures of a send."""
    logger.error("%s: %s", type(exc).__name__, exc)
    return json_error(500, str(exc))


async def request_validation_handler(_: Request, exc: RequestValidationError):
    """Handle request bodies that do not match the expected shape."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning("Rejected malformed request: %s", details)
    return json_error(400, f"Invalid request body: {details}", status=kinds.Status.FAIL)


async def http_exception_handler(_: Request, exc: StarletteHTTPException):
    """Handle standard HTTP exceptions (unknown route, wrong method, ...)."""
    status = kinds.Status.FAIL if exc.status_code < 500 else kinds.Status.ERROR
    response = json_error(exc.status_code, str(exc.detail), status=status)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def trim_trailing_slash_middleware(request: Request, call_next):
    """Route /send/ like /send."""
    path = request.scope["path"]
    if len(path) > 1 and path.endswith("/"):
        request.scope["path"] = path.rstrip("/") or "/"
    return await call_next(request)


async def exception_handling_middleware(request: Request, call_next):
    """Middleware to handle all unhandled exceptions."""
    try:
        return await call_next(request)
    except Exception as e:
        logger.exception("Unhandled exception: %s: %s", type(e).__name__, e)
        return json_error(500, f"Internal server error: {e}")


def create_app(smtp_config: SmtpConfig | None = None) -> FastAPI:
    """
    Create the mail relay application.

    Args:
        smtp_config: SMTP settings shared by every request; read from the
            environment when omitted

    Returns:
        FastAPI: the configured application
    """
    if smtp_config is None:
        smtp_config = build_smtp_config()

    logger.debug(
        "SMTP config: host %s port %s use_tls %s",
        smtp_config.host,
        smtp_config.port,
        smtp_config.use_tls,
    )

    app = FastAPI(
        title="Mail Relay API",
        description=api_description,
        version="1.0.0",
    )
    app.state.smtp_config = smtp_config

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # The last middleware added runs first
    app.middleware("http")(exception_handling_middleware)
    app.middleware("http")(trim_trailing_slash_middleware)

    app.include_router(health.router)
    app.include_router(send_management.router)

    return app


def create_app_from_env() -> FastAPI:
    """Application factory used by uvicorn workers: logging and SMTP settings from the environment."""
    init_logging()
    return create_app(build_smtp_config())
