"""Entrypoint: python -m field_chat"""
from __future__ import annotations

import logging

import uvicorn

from field_chat.api.middleware.request_context import RequestIdFilter
from field_chat.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdFilter())


def main() -> None:
    configure_logging()
    uvicorn.run(
        "field_chat.app:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        # Keep the root handler configured above
        log_config=None,
    )


if __name__ == "__main__":
    main()
