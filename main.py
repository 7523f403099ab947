"""Main entry point for running the Renimusic site."""

import os

import uvicorn
from loguru import logger

from src.core.config import get_settings
from src.core.logging import setup_logging


def main() -> None:
    """Main entry point for the Renimusic site."""
    settings = get_settings()

    setup_logging(settings)

    # PORT is set by most hosting platforms and wins over API_PORT
    port = int(os.environ.get("PORT", settings.api_port))

    # Route uvicorn's own loggers through Loguru
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {
                "class": "src.core.logging.InterceptHandler",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.error": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }

    mode = "development mode with auto-reload" if settings.debug else "production mode"
    logger.info(
        "Renimusic listening on http://{}:{} in {} ({})",
        settings.api_host,
        port,
        settings.environment,
        mode,
    )
    uvicorn.run(
        "src.api.main:app",
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=log_config,
        proxy_headers=settings.security_config.trust_proxy_headers,
    )


if __name__ == "__main__":
    main()
