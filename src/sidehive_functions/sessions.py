"""
SideHive Functions - Onboarding session storage.

Three rows per anonymous session, all keyed by session_id:
- onboarding_state: step, context, business draft id (the record of truth)
- onboarding_sessions: full payload snapshot, plus a lower-cased email hint
- onboarding_profiles: email/display name, only once the user gave them

Email binding lives in preauth_profiles (one row per email).
"""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from sidehive.core.errors import ValidationFailedError
from sidehive.payload import idea_summary

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _maybe_one(response) -> dict | None:
    # maybe_single() returns None (not an empty response) when nothing matched
    if response is None:
        return None
    data = response.data
    if isinstance(data, list):
        return data[0] if data else None
    return data


# =============================================================================
# Save / load
# =============================================================================


def save_session(
    client: Client,
    *,
    session_id: str,
    step: str,
    context: dict | None = None,
    email: str | None = None,
    display_name: str | None = None,
    business_draft_id: str | None = None,
) -> dict:
    """
    Persist one onboarding transition.

    Raises ValidationFailedError for missing session_id/step. A failed
    state upsert propagates; the payload snapshot is best effort.
    """
    field_errors = {}
    if not session_id:
        field_errors["session_id"] = ["This field is required."]
    if not step:
        field_errors["step"] = ["This field is required."]
    if field_errors:
        raise ValidationFailedError("Missing required fields: session_id, step", field_errors=field_errors)

    now = _now_iso()

    if email or display_name:
        profile = {"session_id": session_id, "updated_at": now}
        if email:
            profile["email"] = email
        if display_name:
            profile["display_name"] = display_name
        try:
            client.table("onboarding_profiles").upsert(profile, on_conflict="session_id").execute()
        except Exception as e:
            logger.error(f"Error upserting onboarding profile for {session_id}: {e}")

    client.table("onboarding_state").upsert({
        "session_id": session_id,
        "step": step,
        "context": context or {},
        "business_draft_id": business_draft_id,
        "updated_at": now,
    }, on_conflict="session_id").execute()

    payload = {
        "step": step,
        "context": context or {},
        "email": email,
        "display_name": display_name,
        "business_draft_id": business_draft_id,
    }
    try:
        client.table("onboarding_sessions").upsert({
            "session_id": session_id,
            "payload": payload,
            "user_hint_email": email.lower() if email else None,
            "updated_at": now,
        }, on_conflict="session_id").execute()
    except Exception as e:
        logger.error(f"Error upserting onboarding_sessions for {session_id}: {e}")

    logger.info(f"Saved onboarding session {session_id} at step {step}")
    return {"success": True, "session_id": session_id, "step": step}


def get_state(client: Client, session_id: str) -> dict:
    """
    Everything stored for an anonymous session.

    `email_binding` is the email most recently bound to this session, if any.
    """
    if not session_id:
        raise ValidationFailedError("session_id is required", field_errors={"session_id": ["This field is required."]})

    profile = _maybe_one(
        client.table("onboarding_profiles").select("*").eq("session_id", session_id).maybe_single().execute()
    )
    state = _maybe_one(
        client.table("onboarding_state").select("*").eq("session_id", session_id).maybe_single().execute()
    )
    session_row = _maybe_one(
        client.table("onboarding_sessions").select("payload, updated_at").eq("session_id", session_id).maybe_single().execute()
    )
    business = _maybe_one(
        client.table("businesses").select("*").eq("session_id", session_id).maybe_single().execute()
    )
    products = client.table("products").select("*").eq("session_id", session_id).execute().data or []
    campaigns = client.table("campaigns").select("*").eq("session_id", session_id).execute().data or []
    bindings = (
        client.table("preauth_profiles")
        .select("email, last_seen_at")
        .eq("session_id", session_id)
        .order("last_seen_at", desc=True)
        .limit(1)
        .execute()
        .data
        or []
    )

    return {
        "profile": profile,
        "state": state,
        "payload": session_row.get("payload") if session_row else None,
        "business": business,
        "products": products,
        "campaigns": campaigns,
        "email_binding": bindings[0] if bindings else None,
    }


# =============================================================================
# Email binding
# =============================================================================


def bind_email(client: Client, *, email: str, session_id: str) -> dict:
    """Bind an email to a session (rebinding moves it)."""
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationFailedError("A valid email is required", field_errors={"email": ["Enter a valid email."]})
    if not session_id:
        raise ValidationFailedError("session_id is required", field_errors={"session_id": ["This field is required."]})

    now = _now_iso()
    client.table("preauth_profiles").upsert({
        "email": email,
        "session_id": session_id,
        "last_seen_at": now,
    }, on_conflict="email").execute()

    try:
        client.table("onboarding_sessions").update({"user_hint_email": email}).eq("session_id", session_id).execute()
    except Exception as e:
        logger.error(f"Failed to set email hint for {session_id}: {e}")

    return {"email": email, "session_id": session_id, "last_seen_at": now}


def lookup_email(client: Client, email: str) -> dict[str, Any]:
    """The session an email is bound to, with enough context to describe it."""
    email = (email or "").strip().lower()
    if not email:
        raise ValidationFailedError("email is required", field_errors={"email": ["This field is required."]})

    binding = _maybe_one(
        client.table("preauth_profiles").select("email, session_id, last_seen_at").eq("email", email).maybe_single().execute()
    )
    if not binding:
        return {"found": False, "email": email}

    session_row = _maybe_one(
        client.table("onboarding_sessions").select("payload").eq("session_id", binding["session_id"]).maybe_single().execute()
    )
    payload = session_row.get("payload") if session_row else None
    return {
        "found": True,
        "email": email,
        "session_id": binding["session_id"],
        "last_seen_at": binding.get("last_seen_at"),
        "step": (payload or {}).get("step"),
        "idea_summary": idea_summary(payload),
    }
