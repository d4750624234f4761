"""
Tests for provider error classification and usage tracking in the LLM client.
"""

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest
from pydantic import BaseModel

from sidehive.core.errors import PaymentRequiredError, RateLimitedError, TransientError
from sidehive_functions.llm.client import _classify_provider_error, call_llm, generate_image
from sidehive_functions.usage import estimate_cost

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status):
    return cls("provider said no", response=httpx.Response(status, request=REQUEST), body=None)


class Answer(BaseModel):
    text: str


class TestClassifyProviderError:

    def test_rate_limit(self):
        assert isinstance(_classify_provider_error(_status_error(openai.RateLimitError, 429)), RateLimitedError)

    def test_payment_required(self):
        assert isinstance(_classify_provider_error(_status_error(openai.APIStatusError, 402)), PaymentRequiredError)

    def test_server_error_is_transient(self):
        error = _status_error(openai.InternalServerError, 503)
        assert isinstance(_classify_provider_error(error), TransientError)

    def test_connection_error_is_transient(self):
        error = openai.APIConnectionError(request=REQUEST)
        assert isinstance(_classify_provider_error(error), TransientError)

    def test_wrapped_cause_is_found(self):
        wrapper = RuntimeError("instructor retry failed")
        wrapper.__cause__ = _status_error(openai.RateLimitError, 429)
        assert isinstance(_classify_provider_error(wrapper), RateLimitedError)

    def test_other_errors_pass_through(self):
        error = ValueError("schema mismatch")
        assert _classify_provider_error(error) is error


class TestCallLlm:

    def test_success_logs_usage(self):
        completion = MagicMock()
        completion.usage.prompt_tokens = 100
        completion.usage.completion_tokens = 50
        client = MagicMock()
        client.chat.completions.create_with_completion = AsyncMock(return_value=(Answer(text="hi"), completion))

        with patch("sidehive_functions.llm.client.get_client", return_value=client), \
                patch("sidehive_functions.llm.client.get_service_client"), \
                patch("sidehive_functions.llm.client.log_ai_usage") as mock_usage:
            result = asyncio.run(call_llm(
                response_model=Answer, system_prompt="s", user_prompt="u", operation="bio",
            ))

        assert result.text == "hi"
        kwargs = client.chat.completions.create_with_completion.call_args.kwargs
        assert kwargs["temperature"] == 0.7
        assert kwargs["response_model"] is Answer
        assert mock_usage.call_args.kwargs["tokens_in"] == 100
        assert mock_usage.call_args.kwargs["function_name"] == "bio"

    def test_provider_error_is_classified(self):
        client = MagicMock()
        client.chat.completions.create_with_completion = AsyncMock(
            side_effect=_status_error(openai.RateLimitError, 429)
        )

        with patch("sidehive_functions.llm.client.get_client", return_value=client):
            with pytest.raises(RateLimitedError):
                asyncio.run(call_llm(response_model=Answer, system_prompt="s", user_prompt="u", operation="names"))


class TestGenerateImage:

    def test_returns_png_data_url(self):
        b64 = base64.b64encode(b"png-bytes").decode()
        response = MagicMock()
        response.data = [MagicMock(b64_json=b64)]
        response.usage = None
        raw = MagicMock()
        raw.images.generate = AsyncMock(return_value=response)

        with patch("sidehive_functions.llm.client.get_raw_client", return_value=raw):
            url = asyncio.run(generate_image("a logo"))

        assert url == f"data:image/png;base64,{b64}"

    def test_empty_image_is_transient(self):
        response = MagicMock()
        response.data = [MagicMock(b64_json=None)]
        raw = MagicMock()
        raw.images.generate = AsyncMock(return_value=response)

        with patch("sidehive_functions.llm.client.get_raw_client", return_value=raw):
            with pytest.raises(TransientError):
                asyncio.run(generate_image("a logo"))


class TestEstimateCost:

    def test_known_model(self):
        assert estimate_cost("gpt-4.1-mini", 1_000_000, 0) == pytest.approx(0.40)

    def test_unknown_model_priced_as_default(self):
        assert estimate_cost("mystery", 1000, 1000) == estimate_cost("gpt-4.1-mini", 1000, 1000)
