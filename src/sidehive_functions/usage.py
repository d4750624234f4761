"""
SideHive Functions - AI cost tracking.

Every generation records its token usage and estimated cost in the
`ai_cost_tracking` table. Best effort: failures are logged, never raised.
"""

import logging

from supabase import Client

from sidehive_functions.request_context import get_current_user_id, get_session_id

logger = logging.getLogger(__name__)

# Per 1M tokens
MODEL_COSTS = {
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-4.1": {"input": 2.00, "output": 8.00},
    "gpt-4.1-nano": {"input": 0.10, "output": 0.40},
    "gpt-5-mini": {"input": 0.25, "output": 2.00},
    "gpt-5": {"input": 1.25, "output": 10.00},
    "gpt-image-1": {"input": 5.00, "output": 40.00},
}


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """
    Estimate the cost of an LLM call in USD.

    Unknown models are priced as gpt-4.1-mini.
    """
    costs = MODEL_COSTS.get(model, MODEL_COSTS["gpt-4.1-mini"])
    input_cost = (input_tokens / 1_000_000) * costs["input"]
    output_cost = (output_tokens / 1_000_000) * costs["output"]
    return input_cost + output_cost


def log_ai_usage(
    client: Client,
    *,
    function_name: str,
    model: str,
    tokens_in: int,
    tokens_out: int,
    duration_ms: int | None = None,
    request_type: str | None = None,
    metadata: dict | None = None,
) -> bool:
    """Insert one ai_cost_tracking row. Returns False on failure."""
    cost = estimate_cost(model, tokens_in, tokens_out)
    try:
        client.table("ai_cost_tracking").insert({
            "session_id": get_session_id(),
            "user_id": get_current_user_id(),
            "function_name": function_name,
            "model": model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
            "cost_usd": cost,
            "duration_ms": duration_ms,
            "request_type": request_type,
            "metadata": metadata or {},
        }).execute()
        logger.debug(f"{function_name}: ${cost:.4f} ({tokens_in + tokens_out} tokens)")
        return True
    except Exception as e:
        logger.error(f"Failed to log AI usage for {function_name}: {e}")
        return False
