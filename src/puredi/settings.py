from __future__ import annotations

import logging
import sys

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from puredi.dispatch import HandlerKind


class LoggingSettings(BaseModel):
    """Logging configuration (nested in PureDISettings, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


class PureDISettings(BaseSettings):
    """Application settings read from ``PUREDI_*`` environment variables.

    Examples:
        .. code-block:: bash

            PUREDI_PORT=9000 PUREDI_LOGGING__LEVEL=DEBUG puredi

    """

    model_config = SettingsConfigDict(
        env_prefix="PUREDI_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    title: str = "puredi"
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    api_prefix: str = "/api"
    share_scoped_dependencies: bool = True
    """Share one scoped dependency between the middleware and controller of a request."""
    enable_conventional_middleware: bool = False
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def middleware(self) -> tuple[HandlerKind, ...]:
        """Middleware kinds to install, outermost first."""
        if self.enable_conventional_middleware:
            return (HandlerKind.GREETING_MIDDLEWARE, HandlerKind.CONVENTIONAL_MIDDLEWARE)
        return (HandlerKind.GREETING_MIDDLEWARE,)


def configure_logging(config: LoggingSettings) -> None:
    """Configure the root logger with a single stderr handler.

    Call once at process startup, before the application is created.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(config.level)
    console_handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))
    root_logger.addHandler(console_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
