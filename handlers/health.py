"""
Health check endpoints.

These endpoints never touch the SMTP configuration so that load balancers and
monitoring keep getting a 200 even when the mail server is misconfigured.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

import kinds

router = APIRouter(tags=["Health"])

HEALTH_MESSAGE = "Rust mail up"


def _health_status() -> kinds.MailResponse:
    return kinds.MailResponse(status=kinds.Status.OK, message=HEALTH_MESSAGE)


@router.get("/", status_code=200, response_model=kinds.MailResponse)
def health_check():
    """Report that the service is up."""
    return _health_status()


@router.head("/", status_code=200)
def health_check_head():
    """
    Report that the service is up, headers only.

    The headers are the ones GET / sends, including its content length.
    """
    rendered = JSONResponse(content=_health_status().model_dump(mode="json"))
    return Response(status_code=200, headers=dict(rendered.headers))
