"""
AI-backed generation endpoints.

Every route runs through run_idempotent: a replayed idempotency key gets the
cached response, a new one is rate limited, generated, recorded and cached.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from sidehive.catalog import LogoStyle
from sidehive_functions.auth import AuthenticatedUser, get_optional_user
from sidehive_functions.envelope import (
    RequestMeta,
    get_idempotency_store,
    get_rate_limiter,
    get_request_meta,
    run_idempotent,
)
from sidehive_functions.generation import (
    BriefInput,
    generate_bio,
    generate_brand_extras,
    generate_logos,
    generate_names,
    generate_product_ideas,
    normalize_brief,
    require_fields,
)
from sidehive_functions.generation.naming import to_name_option
from sidehive_functions.idempotency import IdempotencyStore
from sidehive_functions.rate_limit import RateLimiter
from sidehive_functions.request_context import set_request_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])


# =============================================================================
# Request Models
# =============================================================================


class ProductIdeasRequest(BaseModel):
    idea_text: str = Field(min_length=1)
    idea_source: str | None = None
    audience_tags: list[str] = Field(default_factory=list)
    tone_tags: list[str] = Field(default_factory=list)
    max_ideas: int = Field(4, ge=1, le=8)
    exclude_ids: list[str] = Field(default_factory=list)


class IdentityRequest(BriefInput):
    # full: names + tagline/bio/colors/logo; batch: names only; single: one name
    mode: Literal["full", "batch", "single"] = "full"
    count: int = Field(6, ge=1, le=10)
    exclude_names: list[str] = Field(default_factory=list)


class LogosRequest(BaseModel):
    business_name: str = Field(min_length=1)
    style: LogoStyle = LogoStyle.MODERN
    count: int = Field(4, ge=1, le=6)
    first_variation: int = Field(1, ge=1)


class BioRequest(BriefInput):
    business_name: str = Field(min_length=1)
    attempt: int = Field(1, ge=1, le=3)


def _rate_identity(meta: RequestMeta, user: AuthenticatedUser | None) -> str:
    if user is not None:
        set_request_context(user_id=user.id)
        return user.id
    return meta.session_id


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/generate-product-ideas")
async def product_ideas_endpoint(
    req: ProductIdeasRequest,
    meta: RequestMeta = Depends(get_request_meta),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    store: IdempotencyStore = Depends(get_idempotency_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict:
    async def work() -> dict:
        products = await generate_product_ideas(
            req.idea_text,
            audience_tags=req.audience_tags,
            tone_tags=req.tone_tags,
            max_ideas=req.max_ideas,
            exclude_ids=req.exclude_ids,
        )
        return {"products": products}

    return await run_idempotent(
        meta,
        operation="generate-product-ideas",
        kind="product_ideas",
        identity=_rate_identity(meta, user),
        body=req,
        work=work,
        store=store,
        limiter=limiter,
    )


@router.post("/generate-identity")
async def identity_endpoint(
    req: IdentityRequest,
    meta: RequestMeta = Depends(get_request_meta),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    store: IdempotencyStore = Depends(get_idempotency_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict:
    """
    Business names, scored and ranked.

    - mode=single regenerates one slot: `exclude_names` are the names still
      visible in the other slots
    - mode=full also returns tagline, bio, colors and an SVG for the top name
    """
    require_fields(req, "idea", "audiences")
    brief = normalize_brief(req)

    async def work() -> dict:
        count = 1 if req.mode == "single" else req.count
        result = await generate_names(brief, count=count, visible_names=req.exclude_names)
        options = [to_name_option(idea) for idea in result.items]

        if req.mode == "single":
            return {"name_option": options[0]}

        payload = {"name_options": options, "applied_defaults": brief.applied_defaults}
        if req.mode == "full":
            payload.update(await generate_brand_extras(brief, options[0]["name"]))
        return payload

    return await run_idempotent(
        meta,
        operation="generate-identity",
        kind="identity",
        identity=_rate_identity(meta, user),
        body=req,
        work=work,
        store=store,
        limiter=limiter,
    )


@router.post("/generate-logos")
async def logos_endpoint(
    req: LogosRequest,
    meta: RequestMeta = Depends(get_request_meta),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    store: IdempotencyStore = Depends(get_idempotency_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict:
    async def work() -> dict:
        result = await generate_logos(
            req.business_name,
            req.style,
            count=req.count,
            first_variation=req.first_variation,
        )
        return {"logos": result.items, "style": req.style.value, "placeholders": result.fallbacks_used}

    return await run_idempotent(
        meta,
        operation="generate-logos",
        kind="logos",
        identity=_rate_identity(meta, user),
        body=req,
        work=work,
        store=store,
        limiter=limiter,
    )


@router.post("/generate-bio")
async def bio_endpoint(
    req: BioRequest,
    meta: RequestMeta = Depends(get_request_meta),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    store: IdempotencyStore = Depends(get_idempotency_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict:
    require_fields(req, "idea")
    brief = normalize_brief(req)

    async def work() -> dict:
        return await generate_bio(brief, req.business_name, attempt=req.attempt)

    return await run_idempotent(
        meta,
        operation="generate-bio",
        kind="bio",
        identity=_rate_identity(meta, user),
        body=req,
        work=work,
        store=store,
        limiter=limiter,
    )
