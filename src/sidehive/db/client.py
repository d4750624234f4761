"""
SideHive - Supabase Client (anon key).

Client-side database access. Only tables that are readable with the anon
key are touched from here; everything else goes through the functions app.
"""

import logging

from supabase import Client, create_client

from sidehive.config import core_settings

logger = logging.getLogger(__name__)

# Singleton client instance
_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            core_settings.supabase_url,
            core_settings.supabase_anon_key,
        )

    return _client


async def fetch_feature_flags() -> dict[str, bool]:
    """Enabled flags from the feature_flags table."""
    client = get_client()
    response = client.table("feature_flags").select("key, enabled").eq("enabled", True).execute()
    return {row["key"]: bool(row["enabled"]) for row in response.data or []}


def get_authenticated_client(access_token: str) -> Client:
    """
    A fresh client that sends the user's JWT, so RLS applies as that user.

    Not cached: one per access token.
    """
    client = create_client(core_settings.supabase_url, core_settings.supabase_anon_key)
    client.postgrest.auth(access_token)
    return client


async def user_has_business(user_id: str, access_token: str) -> bool:
    """Whether the signed-in user already owns a business identity."""
    client = get_authenticated_client(access_token)
    response = client.table("businesses").select("id").eq("owner_id", user_id).limit(1).execute()
    return bool(response.data)
