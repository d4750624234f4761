"""
SideHive - Database Client.
"""

from sidehive.db.client import (
    fetch_feature_flags,
    get_authenticated_client,
    get_client,
    user_has_business,
)

__all__ = [
    "fetch_feature_flags",
    "get_authenticated_client",
    "get_client",
    "user_has_business",
]
