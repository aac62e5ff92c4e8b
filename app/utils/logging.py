"""structlog helpers shared by the resolver, probe and CLI."""

import logging
import sys

import structlog

_CONFIGURED = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog once for CLI usage, logging to stderr.

    Library code never calls this; hosts embedding the package keep their
    own structlog configuration.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
