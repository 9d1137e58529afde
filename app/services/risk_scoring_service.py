import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from app.agents.recommendations import generate_reasons, generate_recommendations
from app.agents.risk_engine import RiskEngine, aggregate, classify_level
from app.agents.risk_narrator import EnhancementError, RiskNarrator, UnavailableNarrator
from app.models.risk import CalculatedBy, OrganizationRiskInputs, RiskScore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RiskScoringService:
    def __init__(
        self,
        narrator: Optional[RiskNarrator] = None,
        engine: Optional[RiskEngine] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.narrator = narrator or UnavailableNarrator()
        self.engine = engine or RiskEngine()
        self.clock = clock

    def calculate(self, inputs: OrganizationRiskInputs, use_ai: bool = True) -> RiskScore:
        results = self.engine.score_categories(inputs)
        factors = [factor for result in results for factor in result.factors]
        score = aggregate(results)
        level = classify_level(score)

        fallback = RiskScore(
            organization_id=inputs.organization_id,
            organization_name=inputs.organization_name,
            score=score,
            level=level,
            reasons=generate_reasons(factors),
            recommended_actions=generate_recommendations(factors, level),
            factors=factors,
            calculated_at=self.clock(),
            calculated_by=CalculatedBy.MANUAL,
        )

        risk = fallback
        if use_ai and self.narrator.available and fallback.reasons:
            try:
                enhancement = self.narrator.enhance(inputs, factors, score)
            except EnhancementError as exc:
                logger.warning(
                    "AI narration failed, using rule-based explanation",
                    extra={"organization_id": inputs.organization_id, "error": exc.message, "code": exc.code},
                )
            except Exception as exc:
                logger.warning(
                    "AI narrator raised unexpectedly, using rule-based explanation",
                    extra={"organization_id": inputs.organization_id, "error": str(exc)},
                )
            else:
                risk = fallback.model_copy(
                    update={
                        "reasons": enhancement.reasons,
                        "recommended_actions": enhancement.actions,
                        "calculated_by": CalculatedBy.AI,
                    }
                )

        logger.info(
            "Risk score calculated",
            extra={
                "organization_id": risk.organization_id,
                "score": risk.score,
                "level": risk.level.value,
                "factor_count": len(risk.factors),
                "calculated_by": risk.calculated_by.value,
            },
        )
        return risk
