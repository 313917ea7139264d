"""Tests for the diagnostics implementations."""

import logging

import pytest

from src.core.db_client import DatabaseError
from src.core.diagnostics import LoggingDiagnostics, NullDiagnostics
from src.domain.search import SearchPlan


@pytest.fixture
def plan() -> SearchPlan:
    return SearchPlan(
        collection="products",
        filter_query='category = "accessories"',
        term="fone",
        permutations=["foen", "fne", "phone"],
        columns=["name"],
        record_columns=["id", "name", "created", "updated"],
    )


@pytest.mark.unit
class TestLoggingDiagnostics:
    """Tests for LoggingDiagnostics."""

    def test_plan_is_logged_with_context(self, plan, caplog):
        caplog.set_level(logging.INFO, logger="src.core.diagnostics")

        LoggingDiagnostics().record_plan(plan)

        record = caplog.records[-1]
        assert record.getMessage() == "fuzzy_search_plan"
        assert record.term == "fone"
        assert record.permutations == ["foen", "fne", "phone"]
        assert record.filter_query == 'category = "accessories"'

    def test_failure_is_logged_as_error(self, plan, caplog):
        caplog.set_level(logging.INFO, logger="src.core.diagnostics")

        LoggingDiagnostics().record_failure(DatabaseError("database is locked"), plan)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.error == "database is locked"
        assert record.error_type == "DatabaseError"
        assert record.plan["term"] == "fone"

    def test_failure_without_plan(self, caplog):
        caplog.set_level(logging.INFO, logger="src.core.diagnostics")

        LoggingDiagnostics().record_failure(ValueError("bad"), None)

        assert caplog.records[-1].plan is None

    def test_custom_logger(self, plan, caplog):
        caplog.set_level(logging.INFO, logger="catalog.search")

        LoggingDiagnostics(logging.getLogger("catalog.search")).record_plan(plan)

        assert caplog.records[-1].name == "catalog.search"


@pytest.mark.unit
def test_null_diagnostics_accepts_events(plan):
    diagnostics = NullDiagnostics()

    assert diagnostics.record_plan(plan) is None
    assert diagnostics.record_failure(RuntimeError("x"), plan) is None
