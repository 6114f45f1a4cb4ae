from __future__ import annotations

import logging

import uvicorn

from .config import Settings
from .logging_setup import setup_logging
from .main import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("listening on %s:%s", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
