"""
Claim endpoint: attach an anonymous onboarding session to the signed-in user.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from supabase import Client

from sidehive_functions.auth import AuthenticatedUser, get_current_user
from sidehive_functions.claim import claim_session
from sidehive_functions.db import get_service_client
from sidehive_functions.envelope import RequestMeta, envelope, get_request_meta
from sidehive_functions.request_context import set_request_context

router = APIRouter(tags=["claim"])


class ClaimRequest(BaseModel):
    session_id: str = ""


@router.post("/claim-onboarding")
async def claim_endpoint(
    req: ClaimRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    meta: RequestMeta = Depends(get_request_meta),
    client: Client = Depends(get_service_client),
) -> dict:
    set_request_context(user_id=user.id)
    return envelope(meta, **claim_session(client, req.session_id, user.id))
