"""
SideHive - Session payload helpers.

The persisted session payload is `{step, context, email, display_name,
business_draft_id}` with the form state under `context.form`. Both the
functions app and the client read it.
"""

IDEA_SUMMARY_LENGTH = 120


def form_from_payload(payload: dict | None) -> dict:
    if not payload:
        return {}
    return (payload.get("context") or {}).get("form") or {}


def idea_summary(payload: dict | None) -> str | None:
    """Short idea text from a stored session payload."""
    idea = (form_from_payload(payload).get("idea") or "").strip()
    if not idea:
        return None
    if len(idea) > IDEA_SUMMARY_LENGTH:
        return idea[: IDEA_SUMMARY_LENGTH - 1].rstrip() + "…"
    return idea
