"""
Tests for product ideas, logos and bios against mocked providers.
"""

import asyncio
import base64
from unittest.mock import AsyncMock, patch

import pytest

from sidehive.catalog import LogoStyle
from sidehive.core.errors import PaymentRequiredError
from sidehive_functions.generation.bio import BioDraft, build_user_prompt as bio_prompt, generate_bio
from sidehive_functions.generation.logos import (
    build_logo_prompt,
    generate_logos,
    is_image_data_url,
    placeholder_logo,
)
from sidehive_functions.generation.normalize import BriefInput, normalize_brief
from sidehive_functions.generation.product_ideas import (
    ProductFormat,
    ProductIdea,
    ProductIdeas,
    build_system_prompt,
    generate_product_ideas,
)


def _png(tag: str) -> str:
    return "data:image/png;base64," + base64.b64encode(tag.encode()).decode()


def _idea(id_, title="Return-to-Work Roadmap"):
    return ProductIdea(id=id_, title=title, format=ProductFormat.DIGITAL_GUIDE, description="A plan.")


class TestProductIdeas:

    def test_title_clipped(self):
        idea = _idea("a", title="x" * 80)
        assert len(idea.title) == 60
        assert idea.title.endswith("…")

    def test_system_prompt_lists_exclusions(self):
        prompt = build_system_prompt(4, ["p1", "p2"])
        assert "exactly 4" in prompt
        assert "p1, p2" in prompt

    def test_excludes_caps_and_dedupes_ids(self):
        mock_llm = AsyncMock(return_value=ProductIdeas(products=[
            _idea("p1"), _idea("p2"), _idea("p2"), _idea(""), _idea("p5"),
        ]))

        with patch("sidehive_functions.generation.product_ideas.call_llm", mock_llm):
            products = asyncio.run(generate_product_ideas("coaching", max_ideas=3, exclude_ids=["p1"]))

        ids = [p["id"] for p in products]
        assert len(products) == 3
        assert "p1" not in ids
        assert len(set(ids)) == 3
        assert products[0]["format"] == "Digital Guide"
        assert mock_llm.call_args.kwargs["operation"] == "product_ideas"


class TestLogos:

    def test_prompt_uses_style_description(self):
        prompt = build_logo_prompt("Tallwater", LogoStyle.RETRO, 3)
        assert "retro vintage" in prompt
        assert "variation 3" in prompt

    def test_placeholder_is_image_data_url(self):
        assert is_image_data_url(placeholder_logo("Tallwater"))
        assert not is_image_data_url("https://cdn.test/logo.png")

    def test_partial_failures_filled_with_placeholders(self):
        outcomes = [_png("a"), RuntimeError("boom"), _png("b"), _png("c")]

        async def fake_image(prompt):
            outcome = outcomes.pop(0) if outcomes else RuntimeError("provider down")
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        with patch("sidehive_functions.generation.logos.generate_image", side_effect=fake_image):
            result = asyncio.run(generate_logos("Tallwater", LogoStyle.MODERN, count=4))

        assert len(result.items) == 4
        assert result.items[:3] == [_png("a"), _png("b"), _png("c")]
        assert result.items[3] == placeholder_logo("Tallwater")
        assert result.fallbacks_used == 1

    def test_variations_start_at_first_variation(self):
        prompts = []

        async def fake_image(prompt):
            prompts.append(prompt)
            return _png(prompt)

        with patch("sidehive_functions.generation.logos.generate_image", side_effect=fake_image):
            asyncio.run(generate_logos("Tallwater", LogoStyle.MODERN, count=2, first_variation=5))

        assert ["variation 5" in p for p in prompts] == [True, False]
        assert "variation 6" in prompts[1]

    def test_all_failed_first_round_raises(self):
        mock_image = AsyncMock(side_effect=PaymentRequiredError())
        with patch("sidehive_functions.generation.logos.generate_image", mock_image):
            with pytest.raises(PaymentRequiredError):
                asyncio.run(generate_logos("Tallwater", LogoStyle.MODERN, count=2))


class TestBio:

    def test_locked_on_third_attempt(self, sample_brief):
        brief = normalize_brief(BriefInput(**sample_brief))
        mock_llm = AsyncMock(return_value=BioDraft(bio="  We help parents.  "))

        with patch("sidehive_functions.generation.bio.call_llm", mock_llm):
            first = asyncio.run(generate_bio(brief, "Kindred Path", attempt=1))
            third = asyncio.run(generate_bio(brief, "Kindred Path", attempt=3))

        assert first == {"bio": "We help parents.", "attempt": 1, "locked": False}
        assert third["locked"] is True

    def test_retry_prompt_asks_for_new_angle(self, sample_brief):
        brief = normalize_brief(BriefInput(**sample_brief))
        assert "different angle" not in bio_prompt(brief, "Kindred Path", 1)
        assert "different angle" in bio_prompt(brief, "Kindred Path", 2)
