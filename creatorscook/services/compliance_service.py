"""
ComplianceService - Script compliance checking against platform and brand rules.

Two phases:
1. Platform policy: a fixed table of case-insensitive patterns. Every
   match of every rule is flagged with its exact span, overlaps included.
2. Brand rules: each forbidden keyword is flagged at its FIRST occurrence
   only; missing required keywords produce one advisory flag without a
   position.

The numeric compliance score and the risk level are computed
independently of each other.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .script_service import ScriptService
from .models import (
    BrandRuleSet,
    ComplianceFlag,
    FlagPosition,
    FlagType,
    RiskLevel,
    ScriptAnalysisResult,
    Severity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformRule:
    """One platform policy pattern and the flag it produces."""
    name: str
    pattern: re.Pattern
    message: str
    severity: Severity
    suggestion: str


PLATFORM_RULES: List[PlatformRule] = [
    PlatformRule(
        name="absolute_guarantee",
        pattern=re.compile(r"\b(guarantee|guaranteed|promise|ensure|certainty)\b", re.IGNORECASE),
        message="Avoid making absolute guarantees",
        severity=Severity.HIGH,
        suggestion='Use "may help" or "can support" instead of guarantees',
    ),
    PlatformRule(
        name="weight_loss",
        pattern=re.compile(r"\b(lose.*weight|weight.*loss|fat.*burner|diet.*pill)\b", re.IGNORECASE),
        message="Weight loss claims are restricted",
        severity=Severity.HIGH,
        suggestion="Focus on wellness benefits rather than specific weight loss claims",
    ),
    PlatformRule(
        name="medical_claim",
        pattern=re.compile(r"\b(medical|cure|heal|treat|prevent|diagnose)\b", re.IGNORECASE),
        message="Avoid medical claims",
        severity=Severity.HIGH,
        suggestion='Use "supports" or "helps with" instead of medical terminology',
    ),
    PlatformRule(
        name="link_redirect",
        pattern=re.compile(r"\b(click.*link|bio.*link|link.*in.*bio)\b", re.IGNORECASE),
        message="Direct call-to-action language may be restricted",
        severity=Severity.MEDIUM,
        suggestion='Use "check description" or "see more" instead of direct link references',
    ),
    PlatformRule(
        name="sales_pressure",
        pattern=re.compile(r"\b(buy.*now|purchase|order|sale|discount.*price)\b", re.IGNORECASE),
        message="Sales pressure language may be restricted",
        severity=Severity.MEDIUM,
        suggestion="Focus on product benefits rather than direct sales language",
    ),
    PlatformRule(
        name="income_claim",
        pattern=re.compile(r"\b(free.*money|cash.*back|get.*paid|earn.*money)\b", re.IGNORECASE),
        message="Financial opportunity claims are restricted",
        severity=Severity.HIGH,
        suggestion="Avoid making income or financial benefit claims",
    ),
]

SEVERITY_PENALTIES: Dict[Severity, float] = {
    Severity.HIGH: 0.30,
    Severity.MEDIUM: 0.15,
    Severity.LOW: 0.05,
}
MAX_LENGTH_BONUS = 0.10


# ============================================================================
# Rule Engine
# ============================================================================

def _platform_flags(content: str) -> List[ComplianceFlag]:
    flags = []
    for rule in PLATFORM_RULES:
        for match in rule.pattern.finditer(content):
            flags.append(ComplianceFlag(
                type=FlagType.PLATFORM_VIOLATION,
                severity=rule.severity,
                message=rule.message,
                suggestion=rule.suggestion,
                position=FlagPosition(start=match.start(), end=match.end()),
            ))
    return flags


def _brand_flags(content: str, brand_rules: BrandRuleSet) -> List[ComplianceFlag]:
    flags = []

    for keyword in brand_rules.forbidden_keywords:
        match = re.search(re.escape(keyword), content, re.IGNORECASE)
        if match is None:
            continue
        flags.append(ComplianceFlag(
            type=FlagType.BRAND_RULE,
            severity=Severity.HIGH,
            message=f'Forbidden keyword: "{keyword}"',
            suggestion="Remove this term as it violates brand guidelines",
            position=FlagPosition(start=match.start(), end=match.end()),
        ))

    required = brand_rules.required_keywords
    lowered = content.lower()
    if required and not any(k.lower() in lowered for k in required):
        flags.append(ComplianceFlag(
            type=FlagType.BRAND_RULE,
            severity=Severity.LOW,
            message="Consider including required brand keywords",
            suggestion=f"Try to include: {', '.join(required)}",
        ))

    return flags


def scan_script(content: str, brand_rules: Optional[BrandRuleSet] = None) -> List[ComplianceFlag]:
    """
    Scan script text for platform policy and brand rule issues.

    Args:
        content: Script text
        brand_rules: Optional brand keyword rules; skipped when None

    Returns:
        Platform flags (in rule order, then match order) followed by
        brand flags. Never raises.
    """
    content = content or ""
    flags = _platform_flags(content)
    if brand_rules is not None:
        flags.extend(_brand_flags(content, brand_rules))
    return flags


# ============================================================================
# Scorer
# ============================================================================

def score_compliance(flags: List[ComplianceFlag], content_length: int) -> float:
    """
    Score compliance in [0, 1].

    Starts at 1.0, subtracts 0.30 / 0.15 / 0.05 per high / medium / low
    flag and adds a length bonus of min(0.10, length / 1000).
    """
    score = 1.0
    for flag in flags:
        score -= SEVERITY_PENALTIES[flag.severity]
    score += min(MAX_LENGTH_BONUS, max(0, content_length) / 1000)
    return max(0.0, min(1.0, score))


def determine_risk_level(flags: List[ComplianceFlag]) -> RiskLevel:
    """
    Classify risk from flag severities alone, not from the score.

    high: any high-severity flag, or more than 2 medium flags
    medium: any medium flag, or more than 3 flags in total
    low: otherwise
    """
    high_count = sum(1 for f in flags if f.severity == Severity.HIGH)
    medium_count = sum(1 for f in flags if f.severity == Severity.MEDIUM)

    if high_count > 0 or medium_count > 2:
        return RiskLevel.HIGH
    if medium_count > 0 or len(flags) > 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ============================================================================
# Service
# ============================================================================

class ComplianceService:
    """
    Runs compliance analysis for scripts.

    Combines the rule engine, the scorer and AI suggestions. For stored
    scripts the new flag snapshot replaces the old one.
    """

    def __init__(
        self,
        angle_generator=None,
        script_service: Optional[ScriptService] = None,
    ):
        """
        Args:
            angle_generator: AngleGenerationService used for suggestions.
                Without one, analysis returns no suggestions.
            script_service: ScriptService for stored scripts. Only needed
                by analyze_script().
        """
        self.angle_generator = angle_generator
        self.script_service = script_service

    async def check(
        self,
        content: str,
        brand_rules: Optional[BrandRuleSet] = None,
        with_suggestions: bool = True,
    ) -> ScriptAnalysisResult:
        """Analyze script text without touching storage."""
        flags = scan_script(content, brand_rules)

        suggestions = []
        if with_suggestions and self.angle_generator is not None:
            custom_rules = brand_rules.custom_rules if brand_rules else None
            suggestions = await self.angle_generator.suggest(content, flags, custom_rules)

        return ScriptAnalysisResult(
            compliance_flags=flags,
            suggestions=suggestions,
            overall_compliance_score=score_compliance(flags, len(content or "")),
            risk_level=determine_risk_level(flags),
        )

    async def analyze_script(self, user_id: str, script_id: str, content: Optional[str] = None) -> ScriptAnalysisResult:
        """
        Analyze a stored script and replace its compliance snapshot.

        Args:
            user_id: Owner of the script
            script_id: Script UUID
            content: Text to analyze; defaults to the stored content

        Returns:
            ScriptAnalysisResult

        Raises:
            ScriptNotFoundError: If the script does not exist for this user
        """
        if self.script_service is None:
            self.script_service = ScriptService()

        loaded = self.script_service.get_script_with_brand_rules(user_id, script_id)
        script = loaded["script"]
        text = content if content is not None else script.content

        logger.info(f"Analyzing script {script_id} ({len(text)} chars)")
        result = await self.check(text, loaded["brand_rules"])

        self.script_service.update_script_compliance(script_id, result.compliance_flags)

        logger.info(
            f"Script {script_id}: {len(result.compliance_flags)} flags, "
            f"score={result.overall_compliance_score:.2f}, risk={result.risk_level.value}"
        )
        return result
