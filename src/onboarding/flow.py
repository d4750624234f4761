"""
Onboarding - Flow controller.

Owns the form state. Every transition goes through advance(): the new
state is written to durable storage synchronously, then queued for the
background server sync.
"""

import logging
from dataclasses import fields, is_dataclass

from sidehive.telemetry.identity import TelemetryIdentity
from sidehive.telemetry.storage import (
    CONTEXT_KEY,
    DRAFT_BUSINESS_KEY,
    FORM_STATE_KEY,
    STEP_STATE_KEY,
    DurableStorage,
)
from onboarding.client import FunctionsClient
from onboarding.persistence import BackgroundSaver
from onboarding.state import OnboardingFormState, OnboardingStep, get_next_step, parse_step

logger = logging.getLogger(__name__)


def _apply(target, updates: dict) -> None:
    """Shallow-merge `updates` into a dataclass, recursing into nested dataclasses."""
    known = {f.name for f in fields(target)}
    for key, value in updates.items():
        if key not in known:
            raise KeyError(f"Unknown form field: {key}")
        current = getattr(target, key)
        if is_dataclass(current) and isinstance(value, dict):
            _apply(current, value)
        else:
            setattr(target, key, value)


class FlowController:
    """The single owner of onboarding form state for one client."""

    def __init__(
        self,
        storage: DurableStorage,
        identity: TelemetryIdentity,
        client: FunctionsClient,
        saver: BackgroundSaver | None = None,
    ):
        self.storage = storage
        self.identity = identity
        self.client = client
        self.saver = saver or BackgroundSaver()
        self._load_local()

    def _load_local(self) -> None:
        form_data = self.storage.get_json(FORM_STATE_KEY)
        self.form = OnboardingFormState.from_dict(form_data) if form_data else OnboardingFormState()
        self.step = parse_step(self.storage.get(STEP_STATE_KEY))
        self.business_draft_id = self.storage.get(DRAFT_BUSINESS_KEY)
        self.extra_context: dict = self.storage.get_json(CONTEXT_KEY, {}) or {}

    def context(self) -> dict:
        """The context blob persisted with each save."""
        return {**self.extra_context, "form": self.form.to_dict()}

    # =========================================================================
    # Transitions
    # =========================================================================

    def advance(
        self,
        updates: dict | None = None,
        *,
        to_step: OnboardingStep | None = None,
        business_draft_id: str | None = None,
    ) -> OnboardingStep:
        """
        Apply form updates and move to `to_step` (default: the next step).

        Pass `to_step=controller.step` to save without moving. Durable
        storage is written before the server save is queued; called outside
        a running event loop, only the server save is skipped.
        """
        if updates:
            _apply(self.form, updates)
        self.form.touch()
        if business_draft_id is not None:
            self.business_draft_id = business_draft_id
        previous = self.step
        self.step = to_step or get_next_step(self.step)

        self.persist_local()
        self._queue_server_save()
        if previous != self.step:
            logger.info(f"Onboarding step {previous.value} -> {self.step.value}")
        return self.step

    def set_context(self, key: str, value) -> None:
        """Extra context saved alongside the form (e.g. selected generation ids)."""
        self.extra_context[key] = value
        self.storage.set_json(CONTEXT_KEY, self.extra_context)

    def persist_local(self) -> None:
        self.storage.set_json(FORM_STATE_KEY, self.form.to_dict())
        self.storage.set(STEP_STATE_KEY, self.step.value)
        self.storage.set_json(CONTEXT_KEY, self.extra_context)
        if self.business_draft_id:
            self.storage.set(DRAFT_BUSINESS_KEY, self.business_draft_id)

    def _queue_server_save(self) -> None:
        session_id = self.identity.get_session_id()
        step = self.step.value
        context = self.context()
        email = self.form.email or None
        display_name = self.form.display_name or None
        draft_id = self.business_draft_id

        async def save():
            return await self.client.save_session(
                session_id=session_id,
                step=step,
                context=context,
                email=email,
                display_name=display_name,
                business_draft_id=draft_id,
            )

        self.saver.submit(f"{session_id}:{step}", save)

    # =========================================================================
    # Restore
    # =========================================================================

    def hydrate(self, payload: dict) -> None:
        """Replace local state with a stored session payload (no server save)."""
        context = dict(payload.get("context") or {})
        form_data = context.pop("form", None) or {}
        self.form = OnboardingFormState.from_dict(form_data)
        if payload.get("email") and not self.form.email:
            self.form.email = payload["email"]
        if payload.get("display_name") and not self.form.display_name:
            self.form.display_name = payload["display_name"]
        self.step = parse_step(payload.get("step"))
        self.business_draft_id = payload.get("business_draft_id")
        self.extra_context = context
        if not self.business_draft_id:
            self.storage.remove(DRAFT_BUSINESS_KEY)
        self.persist_local()
        logger.info(f"Hydrated onboarding state at step {self.step.value}")

    def reset(self) -> None:
        """Drop local onboarding state (the session id is kept)."""
        for key in (FORM_STATE_KEY, STEP_STATE_KEY, DRAFT_BUSINESS_KEY, CONTEXT_KEY):
            self.storage.remove(key)
        self._load_local()
