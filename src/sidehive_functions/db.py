"""
SideHive Functions - Supabase service client.

Service role access for the functions app. Never shipped to the client.
"""

from supabase import Client, create_client

from sidehive_functions.config import settings

# Singleton client instance
_service_client: Client | None = None


def get_service_client() -> Client:
    """
    Get the service-role Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client
