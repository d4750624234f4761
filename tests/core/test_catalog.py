"""
Tests for the option catalogs.
"""

from sidehive.catalog import (
    AUDIENCE_META,
    Audience,
    LogoStyle,
    NamingMode,
    Vibe,
    describe,
    get_options,
)


class TestCatalogs:

    def test_every_member_has_metadata(self):
        assert set(AUDIENCE_META) == set(Audience)

    def test_get_options_shape(self):
        options = get_options(Vibe)
        assert len(options) == len(Vibe)
        assert options[0] == {
            "id": "professional",
            "label": "Professional",
            "description": "Clear, credible, trustworthy",
            "icon": "💼",
        }

    def test_logo_styles_have_prompt_descriptions(self):
        for option in get_options(LogoStyle):
            assert option["description"]

    def test_describe_passes_unknown_through(self):
        assert describe(["parents", "dog owners"], Audience) == ["Parents & Families", "dog owners"]

    def test_naming_modes(self):
        assert [m.value for m in NamingMode] == ["invented", "descriptive", "personal"]
