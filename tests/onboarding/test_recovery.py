"""
Tests for session recovery: progress detection, restore, email capture and
claim on first hub visit.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from onboarding.flow import FlowController
from onboarding.recovery import (
    CollisionChoice,
    EmailCapture,
    HubClaimer,
    ProgressDetector,
    RecoveryTier,
    SessionRestorer,
)
from onboarding.recovery.restore import payload_from_state
from onboarding.state import OnboardingStep
from sidehive.core.errors import ClaimConflictError, ValidationFailedError
from sidehive.telemetry import Location
from sidehive.telemetry.storage import FORM_STATE_KEY, PENDING_CLAIM_KEY, SESSION_ID_KEY, STEP_STATE_KEY

SAVED = {"success": True}

STORED = {
    "step": "logo",
    "context": {"form": {"idea": "Dog walking", "products": [{"id": "p1"}]}},
    "business_draft_id": "draft-9",
}


@pytest.fixture
def flow(storage, identity, functions_client):
    return FlowController(storage, identity, functions_client)


@pytest.fixture
def restorer(functions_client, identity, flow):
    return SessionRestorer(functions_client, identity, flow)


@pytest.fixture
def capture(functions_client, identity, flow, restorer):
    return EmailCapture(functions_client, identity, flow, restorer)


class TestProgressDetector:
    """Email beats session beats none, and never goes backwards."""

    def test_nothing_anywhere(self, functions_client, storage, transport):
        transport.add("get-onboarding-state", {"state": None, "payload": None, "products": []})
        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1"))
        assert info.tier == RecoveryTier.NONE

    def test_local_progress_is_session_tier(self, functions_client, storage, transport):
        storage.set_json(FORM_STATE_KEY, {"idea": "Candles", "products": [{"id": "p1"}]})
        storage.set(STEP_STATE_KEY, "vibe_audience")
        transport.add("get-onboarding-state", {"payload": None, "email_binding": None})

        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1"))
        assert info.tier == RecoveryTier.SESSION
        assert info.last_step == "vibe_audience"
        assert info.idea_summary == "Candles"
        assert info.has_products
        assert [name for name, _, _ in transport.requests] == ["get-onboarding-state"]

    def test_server_binding_for_session_id_is_email_tier(self, functions_client, storage, transport):
        transport.add("get-onboarding-state", {
            "payload": STORED,
            "products": [],
            "email_binding": {"email": "sam@example.com", "last_seen_at": "2026-10-01T09:00:00+00:00"},
        })

        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1"))

        assert info.tier == RecoveryTier.EMAIL
        assert info.email == "sam@example.com"
        assert info.last_step == "logo"
        assert info.idea_summary == "Dog walking"
        assert [name for name, _, _ in transport.requests] == ["get-onboarding-state"]

    def test_server_binding_beats_local_progress(self, functions_client, storage, transport):
        storage.set_json(FORM_STATE_KEY, {"idea": "Candles"})
        storage.set(STEP_STATE_KEY, "products")
        transport.add("get-onboarding-state", {
            "payload": None,
            "email_binding": {"email": "sam@example.com", "last_seen_at": "2026-10-01T09:00:00+00:00"},
        })

        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1"))

        assert info.tier == RecoveryTier.EMAIL
        assert info.last_step == "products"
        assert info.idea_summary == "Candles"

    def test_empty_local_form_falls_back_to_server(self, functions_client, storage, transport):
        storage.set_json(FORM_STATE_KEY, {"idea": "", "vibes": ["cozy"]})
        transport.add("get-onboarding-state", {"payload": STORED, "products": []})

        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1"))
        assert info.tier == RecoveryTier.SESSION
        assert info.last_step == "logo"
        assert info.idea_summary == "Dog walking"
        assert info.has_products

    def test_email_bound_to_this_session(self, functions_client, storage, transport):
        transport.add("lookup-email", {
            "found": True, "email": "sam@example.com", "session_id": "s1",
            "step": "identity", "idea_summary": "Dog walking",
        })
        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1", email="sam@example.com"))

        assert info.tier == RecoveryTier.EMAIL
        assert info.last_step == "identity"
        assert info.email == "sam@example.com"

    def test_email_bound_elsewhere_is_not_email_tier(self, functions_client, storage, transport):
        transport.add("lookup-email", {"found": True, "session_id": "other"})
        transport.add("get-onboarding-state", {"payload": None})
        info = asyncio.run(ProgressDetector(functions_client, storage).detect("s1", email="sam@example.com"))
        assert info.tier == RecoveryTier.NONE

    def test_tier_never_downgrades(self, functions_client, storage, transport):
        detector = ProgressDetector(functions_client, storage)
        transport.add("lookup-email", {"found": True, "session_id": "s1", "step": "identity"})
        asyncio.run(detector.detect("s1", email="sam@example.com"))

        transport.add("lookup-email", ValidationFailedError("lookup unavailable"))
        transport.add("get-onboarding-state", {"payload": None})
        info = asyncio.run(detector.detect("s1", email="sam@example.com"))

        assert info.tier == RecoveryTier.EMAIL
        assert info.last_step == "identity"

    def test_tiers_are_per_session(self, functions_client, storage, transport):
        detector = ProgressDetector(functions_client, storage)
        transport.add("lookup-email", {"found": True, "session_id": "s1"})
        asyncio.run(detector.detect("s1", email="sam@example.com"))

        transport.add("get-onboarding-state", {"payload": None})
        assert asyncio.run(detector.detect("s2")).tier == RecoveryTier.NONE


class TestSessionRestorer:

    def test_restore_switches_session_and_hydrates(self, restorer, flow, identity, location, storage, transport):
        transport.add("get-onboarding-state", {"payload": STORED})
        assert asyncio.run(restorer.restore("s-old")) is True

        assert identity.get_session_id() == "s-old"
        assert location.get_param("sid") == "s-old"
        assert storage.get(SESSION_ID_KEY) == "s-old"
        assert flow.step == OnboardingStep.LOGO
        assert flow.form.idea == "Dog walking"
        assert flow.business_draft_id == "draft-9"

    def test_nothing_stored_changes_nothing(self, restorer, flow, identity, transport):
        current = identity.get_session_id()
        transport.add("get-onboarding-state", {"state": None, "payload": None})

        assert asyncio.run(restorer.restore("s-old")) is False
        assert identity.get_session_id() == current
        assert flow.step == OnboardingStep.IDEA

    def test_payload_from_state_row(self):
        payload = payload_from_state({"payload": None, "state": {"step": "identity", "context": {"form": {}}}})
        assert payload["step"] == "identity"
        assert payload["business_draft_id"] is None
        assert payload_from_state({}) is None


class TestEmailCapture:
    """Binding, collisions and the user's choice."""

    def test_binds_when_free(self, capture, flow, identity, transport):
        transport.add("lookup-email", {"found": False})
        transport.add("bind-email", {"success": True})
        transport.add("save-onboarding-session", SAVED)

        async def scenario():
            result = await capture.capture("  Sam@Example.com ")
            await flow.saver.close()
            return result

        assert asyncio.run(scenario()) is None
        assert transport.bodies("lookup-email")[0]["email"] == "sam@example.com"
        assert transport.bodies("bind-email")[0] == {"email": "sam@example.com", "session_id": identity.get_session_id()}
        assert flow.form.email == "sam@example.com"
        assert flow.step == OnboardingStep.IDEA
        assert transport.bodies("save-onboarding-session")[0]["email"] == "sam@example.com"

    def test_same_session_rebinds(self, capture, flow, identity, transport):
        transport.add("lookup-email", {"found": True, "session_id": identity.get_session_id()})
        transport.add("bind-email", {"success": True})
        transport.add("save-onboarding-session", SAVED)

        async def scenario():
            result = await capture.capture("sam@example.com")
            await flow.saver.close()
            return result

        assert asyncio.run(scenario()) is None

    def test_collision_returned_without_binding(self, capture, flow, identity, transport):
        flow.form.idea = "Candles"
        transport.add("lookup-email", {
            "found": True, "session_id": "s-old", "step": "logo",
            "idea_summary": "Dog walking", "last_seen_at": "2026-10-01T10:00:00+00:00",
        })

        collision = asyncio.run(capture.capture("sam@example.com"))

        assert collision.email == "sam@example.com"
        assert collision.current.session_id == identity.get_session_id()
        assert collision.current.idea_summary == "Candles"
        assert collision.previous.session_id == "s-old"
        assert collision.previous.idea_summary == "Dog walking"
        assert transport.bodies("bind-email") == []

    def _collision(self, capture, transport):
        transport.add("lookup-email", {"found": True, "session_id": "s-old", "step": "logo"})
        return asyncio.run(capture.capture("sam@example.com"))

    def test_keep_new(self, capture, flow, identity, transport):
        collision = self._collision(capture, transport)
        current = identity.get_session_id()
        transport.add("bind-email", {"success": True})
        transport.add("save-onboarding-session", SAVED)

        async def scenario():
            active = await capture.resolve(collision, CollisionChoice.KEEP_NEW)
            await flow.saver.close()
            return active

        assert asyncio.run(scenario()) == current
        assert transport.bodies("bind-email")[0]["session_id"] == current

    def test_restore_previous(self, capture, flow, identity, transport):
        collision = self._collision(capture, transport)
        transport.add("get-onboarding-state", {"payload": STORED})
        transport.add("bind-email", {"success": True})
        transport.add("save-onboarding-session", SAVED)

        async def scenario():
            active = await capture.resolve(collision, CollisionChoice.RESTORE_PREVIOUS)
            await flow.saver.close()
            return active

        assert asyncio.run(scenario()) == "s-old"
        assert identity.get_session_id() == "s-old"
        assert flow.form.idea == "Dog walking"
        assert flow.form.email == "sam@example.com"
        assert transport.bodies("bind-email")[0]["session_id"] == "s-old"
        assert transport.bodies("save-onboarding-session")[0]["session_id"] == "s-old"

    def test_restore_previous_with_nothing_stored_keeps_new(self, capture, flow, identity, transport):
        collision = self._collision(capture, transport)
        current = identity.get_session_id()
        transport.add("get-onboarding-state", {"payload": None})
        transport.add("bind-email", {"success": True})
        transport.add("save-onboarding-session", SAVED)

        async def scenario():
            active = await capture.resolve(collision, CollisionChoice.RESTORE_PREVIOUS)
            await flow.saver.close()
            return active

        assert asyncio.run(scenario()) == current
        assert transport.bodies("bind-email")[0]["session_id"] == current


class TestHubClaimer:
    """Claim once on the first hub visit; never block the hub."""

    def _claimer(self, functions_client, storage, location, has_business=False):
        return HubClaimer(functions_client, storage, location, has_business=AsyncMock(return_value=has_business))

    def test_claims_pending_session(self, functions_client, storage, location, transport):
        claimer = self._claimer(functions_client, storage, location)
        claimer.mark_pending("s1")
        transport.add("claim-onboarding", {"claimed": {"businesses": 1, "products": 2, "campaigns": 0}})

        result = asyncio.run(claimer.on_hub_visit("user-1", "tok"))

        assert result["claimed"]["products"] == 2
        assert transport.bodies("claim-onboarding") == [{"session_id": "s1"}]
        assert PENDING_CLAIM_KEY not in storage

    def test_url_param_wins(self, functions_client, storage, transport):
        location = Location(f"https://app.sidehive.test/hub?{PENDING_CLAIM_KEY}=s-url")
        claimer = self._claimer(functions_client, storage, location)
        claimer.mark_pending("s-stored")
        transport.add("claim-onboarding", {"claimed": {}})

        asyncio.run(claimer.on_hub_visit("user-1", "tok"))

        assert transport.bodies("claim-onboarding")[0]["session_id"] == "s-url"
        assert location.get_param(PENDING_CLAIM_KEY) is None

    def test_nothing_pending(self, functions_client, storage, location, transport):
        claimer = self._claimer(functions_client, storage, location)
        assert asyncio.run(claimer.on_hub_visit("user-1", "tok")) is None
        assert transport.requests == []

    def test_existing_business_skips_claim(self, functions_client, storage, location, transport):
        claimer = self._claimer(functions_client, storage, location, has_business=True)
        claimer.mark_pending("s1")

        assert asyncio.run(claimer.on_hub_visit("user-1", "tok")) is None
        assert transport.requests == []
        assert PENDING_CLAIM_KEY not in storage

    def test_failure_clears_marker(self, functions_client, storage, location, transport):
        claimer = self._claimer(functions_client, storage, location)
        claimer.mark_pending("s1")
        transport.add("claim-onboarding", ClaimConflictError("Already claimed"))

        assert asyncio.run(claimer.on_hub_visit("user-1", "tok")) is None
        assert PENDING_CLAIM_KEY not in storage
        assert asyncio.run(claimer.on_hub_visit("user-1", "tok")) is None
        assert len(transport.bodies("claim-onboarding")) == 1
