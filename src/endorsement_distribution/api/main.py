"""Endorsement distribution API entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.

The app is created using the factory pattern from
endorsement_distribution.api.create_app().
"""

import logging

from endorsement_distribution.api import create_app
from endorsement_distribution.core.log import configure_logging
from endorsement_distribution.core.settings import get_settings

logger = logging.getLogger(__name__)

# Create the application instance for ASGI servers
# This is what uvicorn references: endorsement_distribution.api.main:app
app = create_app()


def run() -> None:
    """Run the API server using uvicorn.

    This function is called by the eds-api console script
    defined in pyproject.toml.
    """
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("Starting endorsement distribution API on %s:%d", settings.api_host, settings.api_port)

    uvicorn.run(
        "endorsement_distribution.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run()
