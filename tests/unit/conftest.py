"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.services.search_service import FuzzySearchService
from tests.sample_data import SAMPLE_PRODUCTS
from tests.unit.mocks import InMemoryRecordStore, RecordingDiagnostics


@pytest.fixture
def in_memory_store():
    """Provides a fresh, empty InMemoryRecordStore for each test."""
    return InMemoryRecordStore()


@pytest.fixture
def product_store(in_memory_store: InMemoryRecordStore) -> InMemoryRecordStore:
    """In-memory store holding SAMPLE_PRODUCTS as records 1..5."""
    for product in SAMPLE_PRODUCTS:
        in_memory_store.create_record("products", product)
    return in_memory_store


@pytest.fixture
def diagnostics() -> RecordingDiagnostics:
    return RecordingDiagnostics()


@pytest.fixture
def search_service(product_store: InMemoryRecordStore, diagnostics: RecordingDiagnostics) -> FuzzySearchService:
    """Search service wired to the product store and recording diagnostics."""
    return FuzzySearchService(store=product_store, diagnostics=diagnostics)
