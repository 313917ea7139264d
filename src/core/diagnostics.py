"""Diagnostics hook for fuzzy search plans and failures."""

import logging
from typing import Protocol

from src.core.logging import log_with_context
from src.domain.search import SearchPlan


logger = logging.getLogger(__name__)


class Diagnostics(Protocol):
    """Receives structured search events. Implementations may raise; callers shield themselves."""

    def record_plan(self, plan: SearchPlan) -> None:
        """Called before a search executes."""
        ...

    def record_failure(self, error: Exception, plan: SearchPlan | None) -> None:
        """Called when a search fails and degrades to an empty result."""
        ...


class NullDiagnostics:
    """Diagnostics that discard every event."""

    def record_plan(self, plan: SearchPlan) -> None:
        return None

    def record_failure(self, error: Exception, plan: SearchPlan | None) -> None:
        return None


class LoggingDiagnostics:
    """Diagnostics written as structured log events (captured by Logfire when configured)."""

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logger

    def record_plan(self, plan: SearchPlan) -> None:
        log_with_context(self._logger, "info", "fuzzy_search_plan", **plan.model_dump())

    def record_failure(self, error: Exception, plan: SearchPlan | None) -> None:
        log_with_context(
            self._logger,
            "error",
            "fuzzy_search_failed",
            error=str(error),
            error_type=type(error).__name__,
            plan=plan.model_dump() if plan else None,
        )
