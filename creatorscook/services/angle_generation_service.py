"""
AngleGenerationService - LLM-backed virality packs and script suggestions.

Two modes:
- generate(): turn aggregated pain points / delight factors into a
  virality analysis with 1-5 creative angle packs
- suggest(): turn compliance flags into concrete rewrite suggestions

This module owns prompt construction and response parsing. Malformed
model output never raises: angle generation falls back to a built-in
analysis (reported through ViralityAnalysis.used_fallback) and
suggestions fall back to an empty list.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .completion_provider import AgentCompletionProvider, CompletionProvider
from ..core.config import Config
from .models import (
    ComplianceFlag,
    InsightSet,
    ProductContext,
    ScriptSuggestion,
    SuggestionType,
    ThemeInsight,
    ViralityAnalysis,
    ViralityPack,
)

logger = logging.getLogger(__name__)

MAX_PACKS = 5
PROMPT_INSIGHT_LIMIT = 5
PROMPT_QUOTE_LIMIT = 2
HOOK_COUNT = 3

PACK_DEFAULTS = {
    "angle_name": "Untitled Angle",
    "core_angle": "Focus on product benefits",
    "full_script": "This product is amazing! You should try it. Link in bio!",
    "visual_pacing_notes": "Show product, speak to camera, call to action",
    "audio_suggestion": "Upbeat trending audio",
}
DEFAULT_HOOKS = [
    "Try this amazing product!",
    "You need to see this...",
    "I wasn't expecting this...",
]

LENGTH_GUIDANCE = {
    "short": "Keep scripts under 15 seconds",
    "medium": "Aim for 15-25 seconds",
    "long": "Make scripts 25-35 seconds",
}


# ============================================================================
# JSON extraction
# ============================================================================

def extract_first_balanced(text: str, opener: str = "{") -> Optional[str]:
    """
    Return the first balanced {...} or [...] substring of text.

    Brackets inside JSON string literals (including escaped quotes) are
    ignored. Returns None when no balanced span exists.
    """
    closer = "}" if opener == "{" else "]"
    if not text:
        return None

    # Openers still waiting for their closer; an opener that never closes
    # is passed over in favour of the earliest one that does.
    open_positions: List[int] = []
    best: Optional[Tuple[int, int]] = None
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == opener:
            open_positions.append(i)
        elif ch == closer and open_positions:
            begin = open_positions.pop()
            if not open_positions:
                return text[begin:i + 1]
            if best is None or begin < best[0]:
                best = (begin, i)

    return text[best[0]:best[1] + 1] if best else None


def _ensure_number(value: Any, default: float, low: float, high: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(low, min(high, number))


def _ensure_text(value: Any, default: str) -> str:
    if value is None or value == "" or value == [] or value == {}:
        return default
    return str(value)


def _ensure_string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v not in (None, "")]


def _normalize_hooks(value: Any) -> List[str]:
    if isinstance(value, list):
        hooks = [str(h) for h in value if h not in (None, "")]
    elif value not in (None, ""):
        hooks = [str(value)]
    else:
        hooks = []

    for filler in DEFAULT_HOOKS:
        if len(hooks) >= HOOK_COUNT:
            break
        if filler not in hooks:
            hooks.append(filler)

    return hooks[:HOOK_COUNT]


def validate_pack(raw: Any) -> ViralityPack:
    """
    Coerce one model-produced pack into a valid ViralityPack.

    Missing text fields get placeholders, hooks are padded or truncated
    to exactly 3 and scores are clamped to their ranges.
    """
    data = raw if isinstance(raw, dict) else {}
    return ViralityPack(
        angle_name=_ensure_text(data.get("angle_name"), PACK_DEFAULTS["angle_name"]),
        core_angle=_ensure_text(data.get("core_angle"), PACK_DEFAULTS["core_angle"]),
        hook_options=_normalize_hooks(data.get("hook_options")),
        full_script=_ensure_text(data.get("full_script"), PACK_DEFAULTS["full_script"]),
        visual_pacing_notes=_ensure_text(data.get("visual_pacing_notes"), PACK_DEFAULTS["visual_pacing_notes"]),
        audio_suggestion=_ensure_text(data.get("audio_suggestion"), PACK_DEFAULTS["audio_suggestion"]),
        sentiment_score=_ensure_number(data.get("sentiment_score"), 0.0, -1.0, 1.0),
        virality_score=_ensure_number(data.get("virality_score"), 0.5, 0.0, 1.0),
    )


def validate_suggestion(raw: Dict[str, Any]) -> ScriptSuggestion:
    raw_type = raw.get("type")
    try:
        suggestion_type = SuggestionType(raw_type)
    except ValueError:
        suggestion_type = SuggestionType.COMPLIANCE_FIX

    return ScriptSuggestion(
        type=suggestion_type,
        content=_ensure_text(raw.get("content"), "Review script for compliance"),
        reason=_ensure_text(raw.get("reason"), "To improve compliance"),
        confidence=_ensure_number(raw.get("confidence"), 0.5, 0.0, 1.0),
    )


def fallback_analysis() -> ViralityAnalysis:
    """Built-in analysis used when the model output cannot be parsed."""
    return ViralityAnalysis(
        overall_sentiment=0.2,
        overall_virality=0.6,
        key_insights=[
            "Product has mixed customer reviews",
            "Focus on addressing common pain points",
            "Highlight unique value proposition",
        ],
        virality_packs=[
            ViralityPack(
                angle_name="Problem-Solution",
                core_angle="Address common customer pain points with your product as the solution",
                hook_options=[
                    "Tired of dealing with [common problem]?",
                    "Finally found a solution for [problem]",
                    "This changed everything for me...",
                ],
                full_script=(
                    "Stop struggling with [pain point]... I found this product that actually works! "
                    "[show product] It helped me [benefit] and now I can't imagine life without it. "
                    "Link in bio to try it yourself! #[relevant_hashtags]"
                ),
                visual_pacing_notes="0-3s: show pain point; 3-5s: reveal product; 5-12s: demonstrate benefits; 12-15s: call to action",
                audio_suggestion="Problem-solving trending audio",
                sentiment_score=0.3,
                virality_score=0.6,
            )
        ],
        recommendations=[
            "Focus on authentic testimonials",
            "Show before/after results",
            "Use trending audio formats",
            "Keep content under 30 seconds",
            "Include clear call-to-action",
        ],
        used_fallback=True,
    )


@dataclass
class ParsedAnalysis:
    analysis: ViralityAnalysis


@dataclass
class FallbackUsed:
    reason: str


ParseOutcome = Union[ParsedAnalysis, FallbackUsed]


def parse_analysis(text: str) -> ParseOutcome:
    """
    Parse the model's angle response.

    The first balanced JSON object is used. A missing object, invalid
    JSON, or a virality_packs field that is absent, not a list, or empty
    yields FallbackUsed.
    """
    candidate = extract_first_balanced(text or "", "{")
    if candidate is None:
        return FallbackUsed("no JSON object in response")

    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, RecursionError) as e:
        return FallbackUsed(f"invalid JSON: {e}")

    packs = parsed.get("virality_packs")
    if not isinstance(packs, list) or not packs:
        return FallbackUsed("virality_packs missing or empty")

    return ParsedAnalysis(ViralityAnalysis(
        overall_sentiment=_ensure_number(parsed.get("overall_sentiment_score"), 0.0, -1.0, 1.0),
        overall_virality=_ensure_number(parsed.get("overall_virality_potential"), 0.5, 0.0, 1.0),
        key_insights=_ensure_string_list(parsed.get("key_insights")),
        virality_packs=[validate_pack(p) for p in packs[:MAX_PACKS]],
        recommendations=_ensure_string_list(parsed.get("recommendations")),
    ))


def build_custom_instructions(tone: Optional[str] = None, target_length: Optional[str] = None) -> Optional[str]:
    """Turn regeneration options into extra prompt instructions."""
    parts = []
    if tone:
        parts.append(f"TONE: Make the content {tone}.")
    if target_length:
        if target_length not in LENGTH_GUIDANCE:
            raise ValueError(f"Unknown target length: {target_length}")
        parts.append(f"LENGTH: {LENGTH_GUIDANCE[target_length]}.")
    return "\n".join(parts) if parts else None


# ============================================================================
# Service
# ============================================================================

class AngleGenerationService:
    """
    Generates virality packs and compliance suggestions through an
    injected CompletionProvider.
    """

    def __init__(
        self,
        provider: Optional[CompletionProvider] = None,
        suggestion_provider: Optional[CompletionProvider] = None,
    ):
        """
        Args:
            provider: Provider for angle generation. Defaults to an
                AgentCompletionProvider on the "angle" model.
            suggestion_provider: Provider for suggestions. Defaults to
                `provider` when one is given.
        """
        self.provider = provider or AgentCompletionProvider(model_key="angle")
        self.suggestion_provider = suggestion_provider or provider or AgentCompletionProvider(
            model_key="suggestion",
            system_prompt="You are a TikTok content compliance expert.",
        )

    # ------------------------------------------------------------------------
    # Angle mode
    # ------------------------------------------------------------------------

    @staticmethod
    def _format_insights(insights: List[ThemeInsight]) -> str:
        top = sorted(insights, key=lambda i: i.mentions, reverse=True)[:PROMPT_INSIGHT_LIMIT]
        if not top:
            return "- None found"
        return "\n".join(
            f"- {i.theme} (sentiment: {i.sentiment:.2f}, {i.mentions} mentions): "
            f"{'; '.join(i.example_quotes[:PROMPT_QUOTE_LIMIT])}"
            for i in top
        )

    def build_angle_prompt(
        self,
        insights: InsightSet,
        product: ProductContext,
        custom_instructions: Optional[str] = None,
    ) -> str:
        audience = f"\n- Target audience: {product.target_audience}" if product.target_audience else ""
        extra = f"\nADDITIONAL INSTRUCTIONS:\n{custom_instructions}\n" if custom_instructions else ""

        return f"""You are an expert TikTok content strategist and viral marketing specialist. Your task is to analyze product data and create data-driven virality strategies.

PRODUCT INFORMATION:
- Name: {product.name}
- Description: {product.description}
- Platform: {product.platform}{audience}

CUSTOMER PAIN POINTS (from real reviews):
{self._format_insights(insights.pain_points)}

CUSTOMER DELIGHT FACTORS (from real reviews):
{self._format_insights(insights.delight_factors)}

TASK: Generate a comprehensive virality analysis and creative angles.

Please respond with a JSON object containing:
1. overall_sentiment_score (number from -1 to 1)
2. overall_virality_potential (number from 0 to 1)
3. key_insights (array of 3-5 strategic insights)
4. virality_packs (array of 3-5 virality packs)
5. recommendations (array of 3-5 strategic recommendations)

Each virality_pack should include:
- angle_name (catchy name for the angle)
- core_angle (the strategic insight driving this angle)
- hook_options (array of 3 different hook variations)
- full_script (complete 15-30 second TikTok script)
- visual_pacing_notes (specific visual direction and timing)
- audio_suggestion (type of audio or specific sound suggestion)
- sentiment_score (number from -1 to 1)
- virality_score (number from 0 to 1)

GUIDELINES:
- Focus on angles that create contrast between pain points and delight factors
- Scripts should be 15-30 seconds when read aloud
- Include specific visual cues and transitions
- Suggest trending audio types that fit the mood
- Ensure content is "compliant but edgy"
- Focus on authentic, relatable storytelling
- Include clear calls-to-action that feel natural
{extra}
Example format:
{{
  "overall_sentiment_score": 0.23,
  "overall_virality_potential": 0.75,
  "key_insights": ["People love the energy boost but hate the taste"],
  "virality_packs": [
    {{
      "angle_name": "Taste Test Transformation",
      "core_angle": "Contrast the dreaded taste experience with surprising energy benefits",
      "hook_options": ["Stop choking down nasty greens powders...", "I finally found a greens powder that doesn't taste like dirt...", "Your daily greens routine is about to change..."],
      "full_script": "Stop choking down nasty greens powders that taste like grass clippings... [quick cut to face] I found this one that actually tastes like vanilla and gives me energy ALL DAY... [show energy burst] ... Link in bio if you want to actually enjoy your daily greens! #greens #energy #health",
      "visual_pacing_notes": "0-2s: disgusted face with old powder; 2-3s: quick transition; 3-8s: energetic movement; 8-10s: product reveal; 10-15s: call to action",
      "audio_suggestion": "Upbeat trending sound with build-up beat drop at 3s mark",
      "sentiment_score": 0.4,
      "virality_score": 0.8
    }}
  ],
  "recommendations": ["Focus on taste-first messaging", "Use before/after format", "Partner with fitness creators"]
}}

Please provide your analysis in valid JSON format:"""

    def build_additional_packs_prompt(
        self,
        insights: InsightSet,
        product: ProductContext,
        existing: List[ViralityPack],
    ) -> str:
        existing_names = [p.angle_name.lower() for p in existing]

        def remaining(items: List[ThemeInsight]) -> str:
            themes = [
                i.theme for i in items
                if not any(name in i.theme.lower() for name in existing_names)
            ][:3]
            return "\n".join(f"- {t}" for t in themes) or "- None"

        existing_lines = "\n".join(f"- {p.angle_name}: {p.core_angle}" for p in existing)

        return f"""Generate 2-3 more virality packs for this product, focusing on DIFFERENT angles than these existing ones:
{existing_lines}

Product: {product.name}
Description: {product.description}

Focus on these remaining pain points:
{remaining(insights.pain_points)}

And these delight factors:
{remaining(insights.delight_factors)}

Use the same fields as before: angle_name, core_angle, hook_options (3), full_script, visual_pacing_notes, audio_suggestion, sentiment_score, virality_score.

Provide only the virality_packs array in JSON format:"""

    async def _generate_additional_packs(
        self,
        insights: InsightSet,
        product: ProductContext,
        existing: List[ViralityPack],
    ) -> List[ViralityPack]:
        """Best effort: any failure yields no extra packs."""
        room = MAX_PACKS - len(existing)
        if room <= 0:
            return []

        temperature, max_tokens = Config.generation_params("additional_packs")
        prompt = self.build_additional_packs_prompt(insights, product, existing)

        try:
            text = await self.provider.complete(prompt, temperature=temperature, max_tokens=max_tokens)
        except Exception as e:
            logger.warning(f"Additional pack generation failed: {e}")
            return []

        candidate = extract_first_balanced(text or "", "[")
        if candidate is None:
            logger.warning("Additional pack response contained no JSON array")
            return []

        try:
            raw_packs = json.loads(candidate)
        except (json.JSONDecodeError, RecursionError) as e:
            logger.warning(f"Could not parse additional packs: {e}")
            return []

        seen = {p.angle_name.lower() for p in existing}
        extra = []
        for raw in raw_packs:
            if not isinstance(raw, dict):
                continue
            pack = validate_pack(raw)
            if pack.angle_name.lower() in seen:
                continue
            seen.add(pack.angle_name.lower())
            extra.append(pack)

        return extra[:room]

    async def generate(
        self,
        insights: InsightSet,
        product: ProductContext,
        custom_instructions: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ViralityAnalysis:
        """
        Generate a virality analysis from review insights.

        Args:
            insights: Pain points and delight factors for the product
            product: Product name / description / platform / audience
            custom_instructions: Extra prompt instructions (tone, length)
            temperature: Overrides the configured angle temperature
            max_tokens: Overrides the configured angle token budget

        Returns:
            ViralityAnalysis with 1-5 packs. used_fallback is True when
            the model output was unusable.

        Raises:
            CompletionError: If the provider call itself fails
        """
        default_temperature, default_max_tokens = Config.generation_params("angles")
        prompt = self.build_angle_prompt(insights, product, custom_instructions)

        text = await self.provider.complete(
            prompt,
            temperature=default_temperature if temperature is None else temperature,
            max_tokens=default_max_tokens if max_tokens is None else max_tokens,
        )

        outcome = parse_analysis(text)
        if isinstance(outcome, FallbackUsed):
            logger.warning(f"Angle response unusable ({outcome.reason}), using fallback analysis")
            return fallback_analysis()

        analysis = outcome.analysis
        extra = await self._generate_additional_packs(insights, product, analysis.virality_packs)
        analysis.virality_packs.extend(extra)

        logger.info(
            f"Generated {len(analysis.virality_packs)} virality packs for {product.name} "
            f"({len(extra)} from follow-up)"
        )
        return analysis

    # ------------------------------------------------------------------------
    # Suggestion mode
    # ------------------------------------------------------------------------

    def build_suggestion_prompt(
        self,
        content: str,
        flags: List[ComplianceFlag],
        custom_rules: Optional[List[str]] = None,
    ) -> str:
        issues = []
        for i, flag in enumerate(flags, 1):
            span = content[flag.position.start:flag.position.end] if flag.position else "General"
            issues.append(f'{i}. Issue: "{flag.message}" - "{span}" - Suggestion: {flag.suggestion}')

        rules_block = ""
        if custom_rules:
            rules_block = "\nBRAND GUIDELINES:\n" + "\n".join(f"- {r}" for r in custom_rules) + "\n"

        return f"""You are a TikTok content compliance expert. I have a script with some compliance issues. Please provide specific, actionable suggestions to fix them.

SCRIPT:
"{content}"

COMPLIANCE ISSUES FOUND:
{chr(10).join(issues)}
{rules_block}
Please provide 3-4 specific suggestions to improve this script. For each suggestion, provide:
- type: one of "compliance_fix", "hook", "transition", "call_to_action"
- content: the exact text to replace or add
- reason: why this change helps
- confidence: how confident you are this will work (0-1)

Respond in JSON format like:
[
  {{
    "type": "compliance_fix",
    "content": "Replace 'guaranteed results' with 'may help support'",
    "reason": "Removes absolute guarantee language while maintaining benefit focus",
    "confidence": 0.9
  }}
]"""

    async def suggest(
        self,
        content: str,
        flags: List[ComplianceFlag],
        custom_rules: Optional[List[str]] = None,
    ) -> List[ScriptSuggestion]:
        """
        Ask the model for rewrite suggestions addressing compliance flags.

        No model call is made when there are no flags. Provider failures
        and unparseable responses give an empty list.
        """
        if not flags:
            return []

        temperature, max_tokens = Config.generation_params("suggestions")
        prompt = self.build_suggestion_prompt(content, flags, custom_rules)

        try:
            text = await self.suggestion_provider.complete(prompt, temperature=temperature, max_tokens=max_tokens)
        except Exception as e:
            logger.warning(f"Suggestion generation failed: {e}")
            return []

        candidate = extract_first_balanced(text or "", "[")
        if candidate is None:
            logger.warning("Suggestion response contained no JSON array")
            return []

        try:
            raw_items = json.loads(candidate)
        except (json.JSONDecodeError, RecursionError) as e:
            logger.warning(f"Could not parse suggestions: {e}")
            return []

        return [validate_suggestion(item) for item in raw_items if isinstance(item, dict)]
