"""
Tests for review theme classification.
"""

import pytest

from creatorscook.services.models import Theme
from creatorscook.services.theme_taxonomy import THEME_PATTERNS, classify_themes


class TestClassifyThemes:

    def test_single_theme(self):
        assert classify_themes("The taste is awful") == [Theme.TASTE_QUALITY]

    def test_multiple_themes_in_taxonomy_order(self):
        themes = classify_themes("Great price and it smells nice")
        assert themes == [Theme.PRICE_VALUE, Theme.SMELL_AROMA]

    def test_case_insensitive(self):
        assert classify_themes("DELICIOUS FLAVOR") == [Theme.TASTE_QUALITY]

    def test_unmatched_text_is_general_experience(self):
        assert classify_themes("Nice") == [Theme.GENERAL_EXPERIENCE]

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text_is_general_experience(self, text):
        assert classify_themes(text) == [Theme.GENERAL_EXPERIENCE]

    def test_shipping(self):
        assert classify_themes("Arrived quickly") == [Theme.SHIPPING_DELIVERY]

    def test_never_returns_general_with_other_themes(self):
        themes = classify_themes("Battery is dead after a day, awful")
        assert Theme.GENERAL_EXPERIENCE not in themes
        assert Theme.BATTERY_LIFE in themes
        assert Theme.TASTE_QUALITY in themes


class TestThemePatterns:

    def test_every_theme_but_general_has_a_pattern(self):
        covered = [theme for theme, _ in THEME_PATTERNS]
        expected = [t for t in Theme if t != Theme.GENERAL_EXPERIENCE]
        assert covered == expected
