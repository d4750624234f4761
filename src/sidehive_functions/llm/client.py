"""
SideHive Functions - LLM Client.

Wraps OpenAI with Instructor for structured outputs, plus raw image
generation for logos. All model calls go through here so provider errors
are classified in one place and usage is tracked.
"""

import base64
import logging
import time
from typing import TypeVar

import instructor
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from sidehive.core.errors import PaymentRequiredError, RateLimitedError, TransientError
from sidehive_functions.config import settings
from sidehive_functions.db import get_service_client
from sidehive_functions.llm.models import IMAGE_MODEL, get_operation_config
from sidehive_functions.llm.prompt_logger import log_prompt
from sidehive_functions.usage import log_ai_usage

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Singleton client instances
_client: instructor.AsyncInstructor | None = None
_raw_client: AsyncOpenAI | None = None


def get_raw_client() -> AsyncOpenAI:
    """Plain OpenAI client (images)."""
    global _raw_client
    if _raw_client is None:
        _raw_client = AsyncOpenAI(api_key=settings.openai_api_key)
    return _raw_client


def get_client() -> instructor.AsyncInstructor:
    """
    Get the Instructor-wrapped OpenAI client.

    Uses singleton pattern to reuse connection.
    """
    global _client
    if _client is None:
        _client = instructor.from_openai(get_raw_client())
    return _client


def _classify_provider_error(error: Exception) -> Exception:
    """Translate provider failures into the shared taxonomy."""
    cause = error
    while cause is not None and not isinstance(cause, openai.OpenAIError):
        cause = cause.__cause__

    if isinstance(cause, openai.RateLimitError):
        return RateLimitedError("Rate limit exceeded. Please try again in a moment.")
    if isinstance(cause, openai.APIStatusError) and cause.status_code == 402:
        return PaymentRequiredError()
    if isinstance(cause, (openai.APIConnectionError, openai.APITimeoutError)):
        return TransientError(f"Model provider unreachable: {cause}")
    if isinstance(cause, openai.APIStatusError) and cause.status_code >= 500:
        return TransientError(f"Model provider error {cause.status_code}")
    return error


async def call_llm(
    *,
    response_model: type[T],
    system_prompt: str,
    user_prompt: str,
    operation: str,
    max_retries: int = 2,
) -> T:
    """
    Make a structured LLM call with guaranteed schema compliance.

    Args:
        response_model: Pydantic model class for the response
        system_prompt: System message setting context
        user_prompt: User message with the actual request
        operation: Operation name for model config, logging and cost tracking
        max_retries: Schema-repair retries inside Instructor

    Returns:
        Instance of response_model with validated data
    """
    config = get_operation_config(operation)
    model = config.pop("model", "gpt-4.1-mini")
    started = time.perf_counter()

    try:
        response, completion = await get_client().chat.completions.create_with_completion(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_model=response_model,
            max_retries=max_retries,
            temperature=config.get("temperature", 0.5),
        )
    except Exception as e:
        log_prompt(
            operation=operation,
            model=model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_model=response_model.__name__,
            error=str(e),
        )
        raise _classify_provider_error(e) from e

    log_prompt(
        operation=operation,
        model=model,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        response_model=response_model.__name__,
        response=response,
    )

    usage = getattr(completion, "usage", None)
    if usage is not None:
        log_ai_usage(
            get_service_client(),
            function_name=operation,
            model=model,
            tokens_in=usage.prompt_tokens or 0,
            tokens_out=usage.completion_tokens or 0,
            duration_ms=int((time.perf_counter() - started) * 1000),
            request_type="structured",
        )

    return response


async def generate_image(prompt: str, *, operation: str = "logos", size: str = "1024x1024") -> str:
    """Generate one image and return it as a PNG data URL."""
    started = time.perf_counter()
    try:
        response = await get_raw_client().images.generate(model=IMAGE_MODEL, prompt=prompt, size=size, n=1)
    except Exception as e:
        raise _classify_provider_error(e) from e

    image = response.data[0]
    if not image.b64_json:
        raise TransientError("Image provider returned no image data")
    # Validate before handing it to the client
    base64.b64decode(image.b64_json, validate=True)

    usage = getattr(response, "usage", None)
    if usage is not None:
        log_ai_usage(
            get_service_client(),
            function_name=operation,
            model=IMAGE_MODEL,
            tokens_in=getattr(usage, "input_tokens", 0) or 0,
            tokens_out=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.perf_counter() - started) * 1000),
            request_type="image",
        )
    return f"data:image/png;base64,{image.b64_json}"
