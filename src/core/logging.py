"""Observability setup: Pydantic Logfire over the standard logging module.

Modules log through ``logging.getLogger(__name__)`` with structured ``extra``
fields; once ``configure_logfire()`` has run, Logfire picks those records up.
Search operations are wrapped in Logfire spans via ``span()``.
"""

import logging

import logfire

from src.core.config import settings


def configure_logfire() -> None:
    """Configure Logfire for the fuzzyrank service.

    Nothing is exported unless ``LOGFIRE_TOKEN`` is set.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="fuzzyrank",
        service_version="0.1.0",
        send_to_logfire="if-token-present",
    )
    logging.getLogger(__name__).info("Logfire configured", extra={"token_present": bool(settings.logfire_token)})


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span, e.g. ``with span("search_service.search"): ...``."""
    return logfire.span(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Emit ``message`` at ``level`` with ``context`` attached as record attributes.

    Example:
        log_with_context(logger, "info", "fuzzy_search_plan", collection="products", term="fone")
    """
    getattr(logger, level.lower())(message, extra=context)
