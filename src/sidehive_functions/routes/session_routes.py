"""
Onboarding session storage endpoints (anonymous, keyed by session id).
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from supabase import Client

from sidehive_functions import sessions
from sidehive_functions.db import get_service_client
from sidehive_functions.envelope import RequestMeta, envelope, get_request_meta

router = APIRouter(tags=["sessions"])


class SaveSessionRequest(BaseModel):
    session_id: str = ""
    step: str = ""
    context: dict | None = None
    email: str | None = None
    display_name: str | None = None
    business_draft_id: str | None = None


class SessionRequest(BaseModel):
    session_id: str = ""


class EmailLookupRequest(BaseModel):
    email: str = ""


class BindEmailRequest(BaseModel):
    email: str = ""
    session_id: str = ""


@router.post("/save-onboarding-session")
async def save_session_endpoint(
    req: SaveSessionRequest,
    meta: RequestMeta = Depends(get_request_meta),
    client: Client = Depends(get_service_client),
) -> dict:
    result = sessions.save_session(client, **req.model_dump())
    return envelope(meta, **result)


@router.post("/get-onboarding-state")
async def get_state_endpoint(
    req: SessionRequest,
    meta: RequestMeta = Depends(get_request_meta),
    client: Client = Depends(get_service_client),
) -> dict:
    return envelope(meta, **sessions.get_state(client, req.session_id))


@router.post("/lookup-email")
async def lookup_email_endpoint(
    req: EmailLookupRequest,
    meta: RequestMeta = Depends(get_request_meta),
    client: Client = Depends(get_service_client),
) -> dict:
    return envelope(meta, **sessions.lookup_email(client, req.email))


@router.post("/bind-email")
async def bind_email_endpoint(
    req: BindEmailRequest,
    meta: RequestMeta = Depends(get_request_meta),
    client: Client = Depends(get_service_client),
) -> dict:
    return envelope(meta, **sessions.bind_email(client, email=req.email, session_id=req.session_id))
