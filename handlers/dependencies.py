"""
Shared dependencies for the mail relay API handlers.

The SMTP configuration is built once when the application is created and
stored on app.state. Handlers receive it through FastAPI dependency injection.
"""

from typing import Annotated

from fastapi import Depends, Request

from settings import SmtpConfig


def get_smtp_config(request: Request) -> SmtpConfig:
    return request.app.state.smtp_config


SmtpConfigDep = Annotated[SmtpConfig, Depends(get_smtp_config)]
