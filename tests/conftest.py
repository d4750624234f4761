"""
Pytest configuration and fixtures for SideHive tests.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment before importing sidehive modules
os.environ["SIDEHIVE_ENV"] = "development"
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")

from fakes import FakeSupabase, FakeTransport  # noqa: E402
from onboarding.client import FunctionsClient  # noqa: E402
from sidehive.core.envelope import RetryingCaller  # noqa: E402
from sidehive.observability.events import MemoryEventSink  # noqa: E402
from sidehive.telemetry import DurableStorage, Location, TelemetryIdentity  # noqa: E402


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    for method in (
        "select", "insert", "update", "upsert", "delete", "eq", "neq", "is_",
        "gt", "gte", "lt", "lte", "order", "limit", "in_", "maybe_single", "single",
    ):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[], count=0)

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def fake_db():
    """In-memory Supabase stand-in with real filter semantics."""
    return FakeSupabase()


@pytest.fixture
def storage():
    return DurableStorage()


@pytest.fixture
def location():
    return Location("https://app.sidehive.test/onboarding")


@pytest.fixture
def identity(storage, location):
    return TelemetryIdentity(storage, location, env="test")


@pytest.fixture
def events():
    return MemoryEventSink()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def functions_client(identity, events, transport):
    """FunctionsClient over a scripted transport; backoff does not sleep."""
    async def no_sleep(delay):
        return None

    caller = RetryingCaller(identity, events, sleep=no_sleep)
    return FunctionsClient(caller, transport, timeout_seconds=5)


@pytest.fixture
def sample_brief():
    """Brief for a coaching side business."""
    return {
        "idea": "Career coaching for parents returning to work",
        "audiences": ["parents", "professionals"],
        "vibes": ["friendly", "professional"],
        "products": [{"id": "p1", "title": "Return-to-Work Roadmap", "format": "Digital Guide"}],
        "about_you": {
            "first_name": "Dana",
            "last_name": "Okafor",
            "expertise": "10 years in HR",
            "include_first_name": False,
            "include_last_name": False,
        },
        "naming_mode": "invented",
        "banned_words": [],
        "rejected_names": [],
    }
