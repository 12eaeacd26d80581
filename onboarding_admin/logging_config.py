from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for the service.

    Notes:
    - stdlib logging only; uvicorn already installs handlers.
    - This sets the level for the `onboarding_admin` package and its children.
    - Set `APP_LOG_LEVEL=DEBUG` (or INFO/WARNING/ERROR) to control verbosity.
    """

    normalized = level.upper()
    package_logger = logging.getLogger("onboarding_admin")
    package_logger.setLevel(normalized)
    package_logger.propagate = True
