import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI
from pydantic import ValidationError

from app.config import Settings
from app.models.risk import Enhancement, OrganizationRiskInputs, RiskFactor

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a risk assessment expert for youth programs and educational organizations. "
    "Provide concise, actionable insights. Always use the function call."
)

NARRATIVE_TOOL = {
    "type": "function",
    "function": {
        "name": "risk_narrative",
        "description": "Summarize the key risk factors and prioritized actions for an organization",
        "parameters": {
            "type": "object",
            "properties": {
                "reasons": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Top 3-5 key risk factors, concise and actionable",
                },
                "actions": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Top 3-5 recommended actions, specific and prioritized",
                },
            },
            "required": ["reasons", "actions"],
        },
    },
}

CONTEXT_LABELS = [
    ("days_inactive", "Days inactive"),
    ("compliance_score", "Compliance score (%)"),
    ("open_incident_reports", "Open incidents"),
    ("incidents_involve_minors", "Incidents involving minors"),
    ("pending_compliance_items", "Pending compliance items"),
    ("monthly_active_users", "Monthly active users"),
    ("message_volume_change", "Message volume change (%)"),
    ("high_risk_region", "High-risk region"),
    ("new_organization", "New organization"),
    ("rapid_growth", "Rapid growth"),
]


class EnhancementError(Exception):
    def __init__(self, message: str, code: str = "enhancement_failed") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class RiskNarrator:
    """Rewrites rule-based reasons/actions as natural language.

    ``enhance`` returns an :class:`Enhancement` or raises :class:`EnhancementError`;
    it never returns a partial result.
    """

    available = False

    def enhance(self, inputs: OrganizationRiskInputs, factors: Sequence[RiskFactor], score: int) -> Enhancement:
        raise EnhancementError(f"{type(self).__name__} does not implement enhance", code="narrator_not_implemented")


class UnavailableNarrator(RiskNarrator):
    def enhance(self, inputs: OrganizationRiskInputs, factors: Sequence[RiskFactor], score: int) -> Enhancement:
        raise EnhancementError("AI narrator is not configured", code="narrator_unavailable")


class OpenAIRiskNarrator(RiskNarrator):
    available = True

    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.model = settings.openai_model
        self.temperature = settings.openai_temperature
        self.max_tokens = settings.openai_max_tokens
        self.client = client or OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout_seconds,
            max_retries=settings.openai_max_retries,
        )

    def build_prompt(self, inputs: OrganizationRiskInputs, factors: Sequence[RiskFactor], score: int) -> str:
        lines = [
            "Analyze the following organization risk assessment and provide insights.",
            "",
            f"Organization: {inputs.organization_name}",
            f"Risk Score: {score}/100",
            "",
            "Risk Factors:",
        ]
        lines.extend(f"- {f.category.value}: {f.description} ({f.value:g}/100)" for f in factors)

        context = self._context_lines(inputs)
        if context:
            lines.extend(["", "Additional Context:"])
            lines.extend(context)
        return "\n".join(lines)

    def _context_lines(self, inputs: OrganizationRiskInputs) -> List[str]:
        lines = []
        for field, label in CONTEXT_LABELS:
            value = getattr(inputs, field)
            if value is None:
                continue
            if isinstance(value, bool):
                value = "yes" if value else "no"
            lines.append(f"- {label}: {value}")
        return lines

    def enhance(self, inputs: OrganizationRiskInputs, factors: Sequence[RiskFactor], score: int) -> Enhancement:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self.build_prompt(inputs, factors, score)},
                ],
                tools=[NARRATIVE_TOOL],
                tool_choice={"type": "function", "function": {"name": "risk_narrative"}},
            )
        except Exception as exc:
            raise EnhancementError(f"AI request failed: {exc}", code="narrator_request_failed") from exc

        try:
            tool_calls = response.choices[0].message.tool_calls
        except (AttributeError, IndexError, TypeError) as exc:
            raise EnhancementError(f"AI response had no message: {exc}", code="narrator_bad_response") from exc
        if not tool_calls:
            raise EnhancementError("AI response contained no function call", code="narrator_no_tool_call")

        try:
            args: Dict[str, Any] = json.loads(tool_calls[0].function.arguments)
            return Enhancement.model_validate(args)
        except (AttributeError, IndexError, json.JSONDecodeError, TypeError, ValidationError) as exc:
            raise EnhancementError(f"AI response had an unexpected shape: {exc}", code="narrator_bad_response") from exc


def build_narrator(settings: Settings) -> RiskNarrator:
    if settings.ai_enhancement_enabled and settings.openai_api_key:
        return OpenAIRiskNarrator(settings)
    logger.info("AI narrator disabled, using rule-based explanations", extra={"environment": settings.environment})
    return UnavailableNarrator()
