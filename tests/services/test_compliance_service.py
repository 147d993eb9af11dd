"""
Tests for the compliance engine: platform rules, brand rules, scoring,
risk levels and the ComplianceService wrapper.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from creatorscook.services.compliance_service import (
    ComplianceService,
    determine_risk_level,
    scan_script,
    score_compliance,
)
from creatorscook.services.models import (
    BrandRuleSet,
    ComplianceFlag,
    FlagType,
    RiskLevel,
    Script,
    ScriptSuggestion,
    Severity,
)


def _flag(severity):
    return ComplianceFlag(type=FlagType.PLATFORM_VIOLATION, severity=severity, message="x")


# ============================================================================
# Platform rules
# ============================================================================

class TestPlatformRules:

    def test_guarantee_and_medical_claim(self):
        content = "I guarantee this will cure you"
        flags = scan_script(content)

        messages = [f.message for f in flags]
        assert messages == ["Avoid making absolute guarantees", "Avoid medical claims"]
        assert all(f.severity == Severity.HIGH for f in flags)
        assert all(f.type == FlagType.PLATFORM_VIOLATION for f in flags)

        guarantee = flags[0].position
        assert content[guarantee.start:guarantee.end] == "guarantee"

    def test_case_insensitive(self):
        flags = scan_script("GUARANTEED results")
        assert len(flags) == 1
        assert flags[0].message == "Avoid making absolute guarantees"

    def test_every_match_is_flagged(self):
        flags = scan_script("We promise. Really, we promise.")
        assert len(flags) == 2
        assert flags[0].position.start < flags[1].position.start

    def test_overlapping_matches_from_different_rules(self):
        content = "click to buy this link now"
        flags = scan_script(content)

        assert [f.message for f in flags] == [
            "Direct call-to-action language may be restricted",
            "Sales pressure language may be restricted",
        ]
        link, sales = (f.position for f in flags)
        assert content[link.start:link.end] == "click to buy this link"
        assert content[sales.start:sales.end] == "buy this link now"
        assert sales.start < link.end

    def test_medium_rules(self):
        flags = scan_script("Click the link in bio")
        assert [f.severity for f in flags] == [Severity.MEDIUM]
        assert flags[0].message == "Direct call-to-action language may be restricted"

    def test_clean_script(self):
        assert scan_script("This smoothie tastes like vanilla and I drink it every morning") == []

    def test_empty_content(self):
        assert scan_script("") == []


# ============================================================================
# Brand rules
# ============================================================================

class TestBrandRules:

    def test_forbidden_keyword_flagged_at_first_occurrence_only(self):
        content = "cheap, so cheap, really cheap"
        flags = scan_script(content, BrandRuleSet(forbidden_keywords=["cheap"]))

        assert len(flags) == 1
        flag = flags[0]
        assert flag.type == FlagType.BRAND_RULE
        assert flag.severity == Severity.HIGH
        assert flag.message == 'Forbidden keyword: "cheap"'
        assert (flag.position.start, flag.position.end) == (0, 5)

    def test_forbidden_keyword_case_insensitive(self):
        flags = scan_script("Not CHEAP at all", BrandRuleSet(forbidden_keywords=["cheap"]))
        assert flags[0].position.start == 4

    def test_forbidden_keyword_span_after_expanding_characters(self):
        # "İ" lowercases to two characters
        content = "İstanbul deal: CHEAP stuff"
        flags = scan_script(content, BrandRuleSet(forbidden_keywords=["cheap"]))

        position = flags[0].position
        assert content[position.start:position.end] == "CHEAP"

    def test_missing_required_keywords_single_advisory(self):
        flags = scan_script("Great stuff", BrandRuleSet(required_keywords=["#ad", "sponsored"]))

        assert len(flags) == 1
        assert flags[0].severity == Severity.LOW
        assert flags[0].position is None
        assert flags[0].suggestion == "Try to include: #ad, sponsored"

    def test_any_required_keyword_satisfies(self):
        flags = scan_script("Great stuff #AD", BrandRuleSet(required_keywords=["#ad", "sponsored"]))
        assert flags == []

    def test_blank_keywords_are_ignored(self):
        rules = BrandRuleSet(forbidden_keywords=["", "   "], required_keywords=[""])
        assert rules.forbidden_keywords == []
        assert rules.required_keywords == []
        assert scan_script("anything", rules) == []

    def test_platform_flags_come_before_brand_flags(self):
        flags = scan_script("cheap and guaranteed", BrandRuleSet(forbidden_keywords=["cheap"]))
        assert [f.type for f in flags] == [FlagType.PLATFORM_VIOLATION, FlagType.BRAND_RULE]


# ============================================================================
# Scoring & risk
# ============================================================================

class TestScoring:

    def test_one_high_flag_long_script(self):
        flags = [_flag(Severity.HIGH)]
        assert score_compliance(flags, 150) == pytest.approx(0.8)
        assert determine_risk_level(flags) == RiskLevel.HIGH

    def test_two_medium_ten_low(self):
        flags = [_flag(Severity.MEDIUM)] * 2 + [_flag(Severity.LOW)] * 10
        assert score_compliance(flags, 0) == pytest.approx(0.2)
        assert determine_risk_level(flags) == RiskLevel.MEDIUM

    def test_score_clamped_at_zero(self):
        assert score_compliance([_flag(Severity.HIGH)] * 5, 500) == 0.0

    def test_score_clamped_at_one(self):
        assert score_compliance([], 5000) == 1.0

    def test_length_bonus(self):
        assert score_compliance([_flag(Severity.LOW)], 50) == pytest.approx(1.0 - 0.05 + 0.05)

    def test_three_medium_is_high_risk(self):
        assert determine_risk_level([_flag(Severity.MEDIUM)] * 3) == RiskLevel.HIGH

    def test_many_low_flags_is_medium_risk(self):
        assert determine_risk_level([_flag(Severity.LOW)] * 4) == RiskLevel.MEDIUM
        assert determine_risk_level([_flag(Severity.LOW)] * 3) == RiskLevel.LOW

    def test_no_flags_is_low_risk(self):
        assert determine_risk_level([]) == RiskLevel.LOW


# ============================================================================
# ComplianceService
# ============================================================================

class TestComplianceService:

    @pytest.mark.asyncio
    async def test_check_without_generator(self):
        result = await ComplianceService().check("I guarantee this works")

        assert len(result.compliance_flags) == 1
        assert result.suggestions == []
        assert result.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_check_passes_custom_rules_to_suggestions(self):
        suggestion = ScriptSuggestion(content="Say 'may help'", reason="Softer", confidence=0.9)
        generator = MagicMock()
        generator.suggest = AsyncMock(return_value=[suggestion])

        rules = BrandRuleSet(custom_rules=["Never mention competitors"])
        result = await ComplianceService(angle_generator=generator).check("guaranteed", rules)

        assert result.suggestions == [suggestion]
        _, flags, custom_rules = generator.suggest.call_args.args
        assert len(flags) == 1
        assert custom_rules == ["Never mention competitors"]

    @pytest.mark.asyncio
    async def test_check_without_suggestions(self):
        generator = MagicMock()
        generator.suggest = AsyncMock()

        await ComplianceService(angle_generator=generator).check("guaranteed", with_suggestions=False)

        generator.suggest.assert_not_called()

    @pytest.mark.asyncio
    async def test_analyze_script_replaces_snapshot(self):
        script = Script(
            id="script-1",
            product_container_id="container-1",
            user_id="user-1",
            title="Test",
            content="So cheap!",
        )
        script_service = MagicMock()
        script_service.get_script_with_brand_rules.return_value = {
            "script": script,
            "brand_rules": BrandRuleSet(forbidden_keywords=["cheap"]),
        }

        result = await ComplianceService(script_service=script_service).analyze_script("user-1", "script-1")

        script_service.get_script_with_brand_rules.assert_called_once_with("user-1", "script-1")
        script_service.update_script_compliance.assert_called_once_with("script-1", result.compliance_flags)
        assert result.compliance_flags[0].message == 'Forbidden keyword: "cheap"'

    @pytest.mark.asyncio
    async def test_analyze_script_with_override_content(self):
        script = Script(id="s", product_container_id="c", user_id="u", title="t", content="clean text")
        script_service = MagicMock()
        script_service.get_script_with_brand_rules.return_value = {"script": script, "brand_rules": None}

        result = await ComplianceService(script_service=script_service).analyze_script("u", "s", content="buy now")

        assert [f.severity for f in result.compliance_flags] == [Severity.MEDIUM]
