"""
Onboarding - Functions client.

Every call to the functions app goes through FunctionsClient.invoke(), which
attaches the correlation headers (session, trace, env, idempotency key,
enabled flags, context hash) and runs the request inside the retrying call
envelope. An abort key makes a new call cancel its predecessor.
"""

import hashlib
import json
import logging
from typing import Protocol

import httpx

from sidehive.config import CoreSettings, core_settings
from sidehive.core.abort import AbortRegistry, AbortSignal
from sidehive.core.envelope import CallResult, RetryingCaller, RetryPolicy
from sidehive.core.errors import (
    ClaimConflictError,
    PaymentRequiredError,
    RateLimitedError,
    TransientError,
    ValidationFailedError,
)
from sidehive.core.feature_flags import FeatureFlagCache, FlagFetcher
from sidehive.observability.events import EventSink
from sidehive.telemetry.identity import TelemetryIdentity
from sidehive.telemetry.storage import DurableStorage

logger = logging.getLogger(__name__)

# Abort keys: one in-flight request per generation kind
PRODUCT_IDEAS_KEY = "product-ideas"
NAMES_KEY = "names"
LOGOS_KEY = "logos"
BIO_KEY = "bio"


def name_slot_key(index: int) -> str:
    return f"name-slot-{index}"


def logo_slot_key(index: int) -> str:
    return f"logo-slot-{index}"


def context_hash(context: dict) -> str:
    """Short hash of the minimized brand context, for log correlation only."""
    canonical = json.dumps(context, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


# =============================================================================
# Transport
# =============================================================================


class FunctionTransport(Protocol):
    async def post(self, name: str, body: dict, headers: dict[str, str]) -> dict: ...


def _error_from_response(response: httpx.Response) -> Exception:
    """Classify a non-2xx functions response."""
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    message = payload.get("error") if isinstance(payload, dict) else None
    message = message or f"{response.status_code} {response.reason_phrase}"

    if response.status_code == 400:
        return ValidationFailedError(message, field_errors=payload.get("field_errors") or {})
    if response.status_code == 402:
        return PaymentRequiredError(message)
    if response.status_code == 409:
        return ClaimConflictError(message)
    if response.status_code == 429:
        retry_after = payload.get("retry_after") or response.headers.get("retry-after")
        return RateLimitedError(message, retry_after=float(retry_after) if retry_after else None)
    return TransientError(message, status=response.status_code)


class HttpFunctionTransport:
    """POSTs JSON to `<base_url>/<function-name>` with httpx."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._http = http_client or httpx.AsyncClient()

    async def post(self, name: str, body: dict, headers: dict[str, str]) -> dict:
        request_headers = dict(headers)
        if self.api_key and "Authorization" not in request_headers:
            request_headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self._http.post(f"{self.base_url}/{name}", json=body, headers=request_headers)
        except httpx.TimeoutException as e:
            raise TransientError(f"{name}: request timed out") from e
        except httpx.HTTPError as e:
            raise TransientError(f"{name}: {e}") from e

        if response.is_success:
            return response.json()
        raise _error_from_response(response)

    async def aclose(self) -> None:
        await self._http.aclose()


# =============================================================================
# Client
# =============================================================================


class FunctionsClient:
    """Typed access to the SideHive functions."""

    def __init__(
        self,
        caller: RetryingCaller,
        transport: FunctionTransport,
        *,
        flags: FeatureFlagCache | None = None,
        registry: AbortRegistry | None = None,
        timeout_seconds: float = 25.0,
        max_retries: int = 2,
        backoff_base_seconds: float = 0.5,
        backoff_multiplier: float = 3.0,
    ):
        self.caller = caller
        self.identity = caller.identity
        self.transport = transport
        self.flags = flags
        self.registry = registry or AbortRegistry()
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_multiplier = backoff_multiplier

    def policy(self, name: str, action: str, body: dict, *, ai: bool = True) -> RetryPolicy:
        return RetryPolicy(
            operation_name=name,
            action=action,
            timeout_seconds=self.timeout_seconds,
            max_retries=self.max_retries,
            base_delay_seconds=self.backoff_base_seconds,
            multiplier=self.backoff_multiplier,
            provider="functions",
            payload_keys=sorted(body),
            tags=frozenset({"ai", "cacheable"}) if ai else frozenset(),
        )

    async def invoke(
        self,
        name: str,
        body: dict,
        *,
        action: str = "invoke",
        policy: RetryPolicy | None = None,
        abort_key: str | None = None,
        signal: AbortSignal | None = None,
        idempotency_key: str | None = None,
        context: dict | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> CallResult:
        """
        Call one function inside the retrying envelope.

        All attempts share the same trace id and idempotency key, so a
        retry after a lost response is served from the server's cache.
        """
        policy = policy or self.policy(name, action, body)
        headers = self.identity.get_telemetry_headers()
        headers["X-Idempotency-Key"] = idempotency_key or headers["X-Trace-Id"]
        if self.flags is not None:
            flags_header = await self.flags.header_value()
            if flags_header:
                headers["X-Feature-Flags"] = flags_header
        if context is not None:
            headers["X-Context-Hash"] = context_hash(context)
        if extra_headers:
            headers.update(extra_headers)

        if abort_key is not None and signal is None:
            signal = self.registry.create(abort_key)

        async def attempt_fn(attempt_signal: AbortSignal, attempt: int) -> dict:
            attempt_signal.throw_if_aborted()
            return await self.transport.post(name, body, headers)

        try:
            return await self.caller.call(attempt_fn, policy, signal=signal, headers=headers)
        finally:
            if abort_key is not None:
                self.registry.cleanup(abort_key, signal)

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_product_ideas(
        self,
        idea_text: str,
        *,
        idea_source: str | None = None,
        audience_tags: list[str] | None = None,
        tone_tags: list[str] | None = None,
        max_ideas: int = 4,
        exclude_ids: list[str] | None = None,
    ) -> list[dict]:
        body = {
            "idea_text": idea_text,
            "idea_source": idea_source,
            "audience_tags": audience_tags or [],
            "tone_tags": tone_tags or [],
            "max_ideas": max_ideas,
            "exclude_ids": exclude_ids or [],
        }
        result = await self.invoke(
            "generate-product-ideas", body, action="generate", abort_key=PRODUCT_IDEAS_KEY,
            context={"idea": idea_text},
        )
        return result.data.get("products", [])

    async def generate_names(
        self,
        brief: dict,
        *,
        mode: str = "batch",
        exclude_names: list[str] | None = None,
        abort_key: str = NAMES_KEY,
    ) -> dict:
        """
        `mode="batch"` returns {name_options: [...]}; `mode="single"` returns
        {name_option: {...}}.
        """
        body = {**brief, "mode": mode, "exclude_names": exclude_names or []}
        result = await self.invoke(
            "generate-identity", body, action=f"names_{mode}", abort_key=abort_key,
            context={"idea": brief.get("idea"), "vibes": brief.get("vibes")},
        )
        return result.data

    async def generate_logos(
        self,
        business_name: str,
        style: str,
        *,
        count: int = 4,
        first_variation: int = 1,
        abort_key: str = LOGOS_KEY,
    ) -> list[str]:
        body = {
            "business_name": business_name,
            "style": style,
            "count": count,
            "first_variation": first_variation,
        }
        result = await self.invoke(
            "generate-logos", body, action="generate", abort_key=abort_key,
            context={"business_name": business_name, "style": style},
        )
        return result.data.get("logos", [])

    async def generate_bio(self, brief: dict, business_name: str, *, attempt: int = 1) -> dict:
        body = {**brief, "business_name": business_name, "attempt": attempt}
        result = await self.invoke(
            "generate-bio", body, action="generate", abort_key=BIO_KEY,
            context={"business_name": business_name},
        )
        return result.data

    # =========================================================================
    # Sessions
    # =========================================================================

    async def save_session(
        self,
        *,
        session_id: str,
        step: str,
        context: dict,
        email: str | None = None,
        display_name: str | None = None,
        business_draft_id: str | None = None,
    ) -> dict:
        body = {
            "session_id": session_id,
            "step": step,
            "context": context,
            "email": email,
            "display_name": display_name,
            "business_draft_id": business_draft_id,
        }
        policy = self.policy("save-onboarding-session", "save", body, ai=False)
        result = await self.invoke("save-onboarding-session", body, policy=policy)
        return result.data

    async def get_state(self, session_id: str) -> dict:
        body = {"session_id": session_id}
        policy = self.policy("get-onboarding-state", "load", body, ai=False)
        result = await self.invoke("get-onboarding-state", body, policy=policy)
        return result.data

    async def lookup_email(self, email: str) -> dict:
        body = {"email": email}
        policy = self.policy("lookup-email", "lookup", body, ai=False)
        result = await self.invoke("lookup-email", body, policy=policy)
        return result.data

    async def bind_email(self, email: str, session_id: str) -> dict:
        body = {"email": email, "session_id": session_id}
        policy = self.policy("bind-email", "bind", body, ai=False)
        result = await self.invoke("bind-email", body, policy=policy)
        return result.data

    async def claim(self, session_id: str, access_token: str) -> dict:
        body = {"session_id": session_id}
        policy = self.policy("claim-onboarding", "claim", body, ai=False)
        result = await self.invoke(
            "claim-onboarding", body, policy=policy,
            extra_headers={"Authorization": f"Bearer {access_token}"},
        )
        return result.data


def build_client(
    identity: TelemetryIdentity,
    events: EventSink,
    *,
    storage: DurableStorage,
    settings: CoreSettings | None = None,
    flag_fetcher: FlagFetcher | None = None,
) -> FunctionsClient:
    """Wire a FunctionsClient from CoreSettings."""
    settings = settings or core_settings
    caller = RetryingCaller(identity, events)
    flags = None
    if flag_fetcher is not None:
        flags = FeatureFlagCache(
            flag_fetcher,
            storage,
            ttl_seconds=settings.flag_cache_ttl_seconds,
            allow_overrides=settings.is_development,
        )
    transport = HttpFunctionTransport(settings.functions_base_url, api_key=settings.supabase_anon_key)
    return FunctionsClient(
        caller,
        transport,
        flags=flags,
        timeout_seconds=settings.request_timeout_seconds,
        max_retries=settings.max_retries,
        backoff_base_seconds=settings.backoff_base_seconds,
        backoff_multiplier=settings.backoff_multiplier,
    )
