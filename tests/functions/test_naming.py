"""
Tests for name filtering, scoring and batch generation.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from sidehive.catalog import NamingMode
from sidehive_functions.generation.naming import (
    NameIdea,
    NameIdeas,
    analyze_rejected_patterns,
    build_user_prompt,
    check_name,
    generate_names,
    rank_names,
    score_name,
)
from sidehive_functions.generation.normalize import BriefInput, normalize_brief


def _check(name, mode=NamingMode.INVENTED, banned=(), rejected=(), visible=()):
    return check_name(
        name,
        mode=mode,
        banned_words=set(banned),
        rejected_names=set(rejected),
        visible_names=set(visible),
    )


def _ideas(*names):
    return NameIdeas(names=[NameIdea(name=n, tagline="t", archetype="Creative & Visionary") for n in names])


class TestCheckName:
    """Each filter rule in isolation."""

    def test_accepts_clean_name(self):
        assert _check("Tallwater") is None
        assert _check("Kindred Path") is None

    def test_cliche_words(self):
        assert _check("Career Hub") == "cliche:hub"
        assert _check("Spark Parents") == "cliche:spark"

    def test_filler_words(self):
        assert _check("Dana HQ") == "filler:hq"

    def test_alliteration(self):
        assert _check("Bright Beginnings") == "alliteration"

    def test_word_count(self):
        assert _check("Return To Work") == "too_many_words"
        assert _check("Dana Okafor Coaching", mode=NamingMode.PERSONAL) is None

    def test_descriptive_mode_rejects_invented_single_word(self):
        assert _check("Zentora", mode=NamingMode.DESCRIPTIVE) == "invented_single_word"
        assert _check("Zentora") is None

    def test_banned_words_match_bare_and_possessive(self):
        assert _check("Dana's Path", banned={"dana"}) == "banned_word:dana"
        assert _check("Path, Dana", banned={"dana"}) == "banned_word:dana"

    def test_rejected_and_visible(self):
        assert _check("kindred  path", rejected={"kindred path"}) == "previously_rejected"
        assert _check("Tallwater", visible={"tallwater"}) == "duplicate"


class TestScoring:

    def test_shorter_and_distinct_rank_higher(self):
        assert score_name("Tallwater").total > score_name("The Company").total

    def test_rank_is_stable_for_ties(self):
        ideas = [NameIdea(name="Alpha Road"), NameIdea(name="Bravo Lane"), NameIdea(name="Solo")]
        assert [i.name for i in rank_names(ideas)] == ["Solo", "Alpha Road", "Bravo Lane"]

    def test_rejected_pattern_guidance(self):
        guidance = analyze_rejected_patterns(["Dana's Place", "One Two Three"])
        assert len(guidance) == 2


class TestPrompt:

    def test_personal_mode_uses_checked_name_parts(self, sample_brief):
        sample_brief["naming_mode"] = "personal"
        sample_brief["about_you"]["include_first_name"] = True
        prompt = build_user_prompt(normalize_brief(BriefInput(**sample_brief)), 6, [])
        assert "founder's name: Dana." in prompt

    def test_exclusions_listed(self, sample_brief):
        prompt = build_user_prompt(normalize_brief(BriefInput(**sample_brief)), 1, ["Tallwater"])
        assert "do not repeat: Tallwater" in prompt
        assert "Okafor" in prompt


class TestGenerateNames:
    """Filtering and top-up against a mocked model."""

    def test_filters_and_tops_up(self, sample_brief):
        brief = normalize_brief(BriefInput(**sample_brief))
        mock_llm = AsyncMock(side_effect=[
            _ideas("Kindred Path", "Career Hub", "Bright Beginnings", "Tallwater"),
            _ideas("Fieldnote", "Willowmark", "Open Lantern", "Honest Compass"),
        ])

        with patch("sidehive_functions.generation.naming.call_llm", mock_llm):
            result = asyncio.run(generate_names(brief, count=6))

        names = [idea.name for idea in result.items]
        assert len(names) == 6
        assert "Career Hub" not in names
        assert "Bright Beginnings" not in names
        assert result.fallbacks_used == 0
        assert mock_llm.await_count == 2

    def test_never_returns_banned_or_visible(self, sample_brief):
        sample_brief["banned_words"] = ["path"]
        brief = normalize_brief(BriefInput(**sample_brief))
        mock_llm = AsyncMock(return_value=_ideas("Kindred Path", "Tallwater"))

        with patch("sidehive_functions.generation.naming.call_llm", mock_llm):
            result = asyncio.run(generate_names(brief, count=1, visible_names=["Tallwater"]))

        assert result.items[0].name not in ("Kindred Path", "Tallwater")

    def test_placeholders_when_model_keeps_failing_filters(self, sample_brief):
        brief = normalize_brief(BriefInput(**sample_brief))
        mock_llm = AsyncMock(return_value=_ideas("Career Hub"))

        with patch("sidehive_functions.generation.naming.call_llm", mock_llm):
            result = asyncio.run(generate_names(brief, count=2))

        assert result.fallbacks_used == 2
        assert len({idea.name for idea in result.items}) == 2
