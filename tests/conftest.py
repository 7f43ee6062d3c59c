import pytest

from survey_engine.controller import SurveyEngine
from survey_engine.storage import InMemoryStore

from helpers.fakes import FAST, MockBackend

INSTANCE_KEY = "sentiment-form-2@2026-10"


@pytest.fixture
def backend():
    """MockBackend serving the three-question catalog."""
    return MockBackend()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_engine(backend, store):
    """Factory for engines sharing the fixture backend and store.

    Each call returns a fresh engine, which is how tests simulate a reload.
    """

    def _make(**overrides) -> SurveyEngine:
        options = {
            "namespace": "sentiment",
            "identity": "e-42",
            "instance_key": INSTANCE_KEY,
            **FAST,
            **overrides,
        }
        return SurveyEngine(backend, store, **options)

    return _make
