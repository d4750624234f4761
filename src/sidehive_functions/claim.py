"""
SideHive Functions - Claiming an anonymous session.

Moves the session's business, products and campaigns onto the signed-in
user. Every update is guarded on "not yet owned", so claiming twice claims
nothing the second time.
"""

import logging

from supabase import Client

from sidehive.core.errors import ClaimConflictError, ValidationFailedError

logger = logging.getLogger(__name__)


def _ids(response) -> list[str]:
    return [row["id"] for row in (response.data or [])]


def claim_session(client: Client, session_id: str, user_id: str) -> dict:
    """
    Transfer every record owned by `session_id` to `user_id`.

    Raises ClaimConflictError if another user already owns the session's
    business.
    """
    if not session_id:
        raise ValidationFailedError("session_id is required", field_errors={"session_id": ["This field is required."]})

    logger.info(f"Claiming session {session_id} for user {user_id}")

    owners = client.table("businesses").select("owner_id").eq("session_id", session_id).execute().data or []
    if any(row.get("owner_id") and row["owner_id"] != user_id for row in owners):
        raise ClaimConflictError()

    business_ids = _ids(
        client.table("businesses")
        .update({"owner_id": user_id, "session_id": None})
        .eq("session_id", session_id)
        .is_("owner_id", "null")
        .execute()
    )

    product_ids = _ids(
        client.table("products")
        .update({"user_id": user_id, "session_id": None})
        .eq("session_id", session_id)
        .is_("user_id", "null")
        .execute()
    )

    campaign_ids: list[str] = []
    if business_ids:
        campaign_ids = _ids(
            client.table("campaigns")
            .update({"session_id": None})
            .eq("session_id", session_id)
            .in_("business_id", business_ids)
            .execute()
        )

    result = {
        "claimed": {
            "businesses": len(business_ids),
            "products": len(product_ids),
            "campaigns": len(campaign_ids),
        },
        "ids": {
            "business_ids": business_ids,
            "product_ids": product_ids,
            "campaign_ids": campaign_ids,
        },
    }
    logger.info(f"Claim complete for {session_id}: {result['claimed']}")
    return result
