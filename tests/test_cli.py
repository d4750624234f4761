"""
Tests for the sidehive CLI.
"""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from sidehive import __version__
from sidehive.main import app
from sidehive.telemetry import DurableStorage, Location, TelemetryIdentity
from sidehive.telemetry.storage import FLAG_OVERRIDES_KEY, FORM_STATE_KEY, SESSION_ID_KEY, STEP_STATE_KEY

runner = CliRunner()


@pytest.fixture
def local():
    storage = DurableStorage()
    location = Location("http://localhost:5173/onboarding")
    identity = TelemetryIdentity(storage, location, env="test")
    with patch("sidehive.main._local_identity", return_value=(storage, location, identity)):
        yield storage, location, identity


class TestVersion:

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestSession:
    """The local session id and saved step."""

    def test_creates_session(self, local):
        storage, location, _ = local
        result = runner.invoke(app, ["session"])

        assert result.exit_code == 0
        session_id = storage.get(SESSION_ID_KEY)
        assert session_id in result.output
        assert location.get_param("sid") == session_id

    def test_shows_saved_step_and_idea(self, local):
        storage, _, _ = local
        storage.set(STEP_STATE_KEY, "identity")
        storage.set_json(FORM_STATE_KEY, {"idea": "Candles"})

        result = runner.invoke(app, ["session"])
        assert "identity" in result.output
        assert "Candles" in result.output

    def test_new_forgets_previous(self, local):
        storage, _, _ = local
        storage.set(SESSION_ID_KEY, "old-session")
        storage.set(STEP_STATE_KEY, "logo")

        result = runner.invoke(app, ["session", "--new"])

        assert result.exit_code == 0
        assert storage.get(SESSION_ID_KEY) != "old-session"
        assert STEP_STATE_KEY not in storage

    def test_reports_divergence(self, local):
        storage, location, _ = local
        storage.set(SESSION_ID_KEY, "stored-session")
        location.set_param("sid", "url-session")

        result = runner.invoke(app, ["session"])
        assert "url-session" in result.output
        assert "stored-session" in result.output


class TestFlagOverride:

    def test_on_and_clear(self, local):
        storage, _, _ = local

        result = runner.invoke(app, ["flag-override", "beta_bio", "on"])
        assert result.exit_code == 0
        assert storage.get_json(FLAG_OVERRIDES_KEY) == {"beta_bio": True}

        result = runner.invoke(app, ["flag-override", "beta_bio", "clear"])
        assert result.exit_code == 0
        assert "beta_bio" not in (storage.get_json(FLAG_OVERRIDES_KEY) or {})

    def test_invalid_state(self, local):
        result = runner.invoke(app, ["flag-override", "beta_bio", "maybe"])
        assert result.exit_code == 1
