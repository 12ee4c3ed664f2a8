#!/usr/bin/env python3
"""
Startup script for the mail relay.

This script reads the bind settings from the environment and starts uvicorn
with the configured number of worker processes. Each worker builds the
application (and its SMTP configuration) through main:create_app_from_env.
"""

import logging

import uvicorn

from settings import build_server_bind, init_logging

logger = logging.getLogger(__name__)


def main():
    """Main startup function."""
    init_logging()
    server_bind = build_server_bind()

    logger.debug(
        "Server bind: address %s port %s workers %s",
        server_bind.addr,
        server_bind.port,
        server_bind.workers,
    )
    logger.info("Starting mail relay on %s:%s", server_bind.addr, server_bind.port)

    uvicorn.run(
        "main:create_app_from_env",
        factory=True,
        host=server_bind.addr,
        port=server_bind.port,
        workers=server_bind.workers,
        reload=False,
        access_log=True,
        log_config=None,
    )


if __name__ == "__main__":
    main()
