import math
from typing import Dict, Iterable, List

from app.models.risk import CategoryResult, OrganizationRiskInputs, RiskCategory, RiskFactor, RiskLevel, clamp_severity


def contribution(value: float, weight: float, ceiling: float) -> float:
    """Points a factor adds to its category: severity share of ``weight * ceiling``."""
    weight = max(0.0, min(1.0, weight))
    return clamp_severity(value) / 100 * weight * ceiling


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classify_level(score: int) -> RiskLevel:
    if score >= 75:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 25:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def aggregate(results: Iterable[CategoryResult]) -> int:
    results = list(results)
    total = sum(result.score for result in results)
    ceiling = sum(result.max_score for result in results)
    if ceiling <= 0:
        return 0
    return max(0, min(100, round_half_up(total / ceiling * 100)))


class _CategoryBuilder:
    def __init__(self, category: RiskCategory, ceiling: float) -> None:
        self.category = category
        self.ceiling = ceiling
        self.factors: List[RiskFactor] = []
        self.score = 0.0

    def add(self, value: float, weight: float, description: str) -> None:
        factor = RiskFactor(category=self.category, weight=weight, description=description, value=value)
        self.factors.append(factor)
        self.score += contribution(factor.value, factor.weight, self.ceiling)

    def build(self) -> CategoryResult:
        return CategoryResult(
            category=self.category,
            factors=self.factors,
            score=min(self.score, self.ceiling),
            max_score=self.ceiling,
        )


class RiskEngine:
    """Turns an input snapshot into weighted factors and a 0-100 score.

    Each category has a fixed ceiling and the factor weights inside a category
    sum to 1.0, so the ceilings bound the total at 100.
    """

    ceilings: Dict[RiskCategory, float] = {
        RiskCategory.ACTIVITY: 20,
        RiskCategory.COMPLIANCE: 30,
        RiskCategory.SAFETY: 35,
        RiskCategory.ENGAGEMENT: 15,
    }

    def _builder(self, category: RiskCategory) -> _CategoryBuilder:
        return _CategoryBuilder(category, self.ceilings[category])

    def score_activity(self, inputs: OrganizationRiskInputs) -> CategoryResult:
        builder = self._builder(RiskCategory.ACTIVITY)
        if inputs.days_inactive is not None:
            builder.add(min(100, inputs.days_inactive / 90 * 100), 0.4, f"{inputs.days_inactive} days inactive")
        if inputs.event_cancellations is not None and inputs.event_cancellations > 0:
            builder.add(
                min(100, inputs.event_cancellations * 20),
                0.3,
                f"{inputs.event_cancellations} event cancellations",
            )
        if inputs.monthly_events is not None and inputs.monthly_events < 2:
            builder.add(60, 0.3, "Low monthly event activity")
        return builder.build()

    def score_compliance(self, inputs: OrganizationRiskInputs) -> CategoryResult:
        builder = self._builder(RiskCategory.COMPLIANCE)
        if inputs.compliance_score is not None:
            builder.add(100 - inputs.compliance_score, 0.4, f"Compliance score: {inputs.compliance_score:g}%")
        if inputs.missed_compliance_deadlines is not None and inputs.missed_compliance_deadlines > 0:
            builder.add(
                min(100, inputs.missed_compliance_deadlines * 25),
                0.3,
                f"{inputs.missed_compliance_deadlines} missed compliance deadlines",
            )
        if inputs.expired_documents is not None and inputs.expired_documents > 0:
            builder.add(
                min(100, inputs.expired_documents * 30),
                0.3,
                f"{inputs.expired_documents} expired compliance documents",
            )
        return builder.build()

    def score_safety(self, inputs: OrganizationRiskInputs) -> CategoryResult:
        builder = self._builder(RiskCategory.SAFETY)
        if inputs.open_incident_reports is not None and inputs.open_incident_reports > 0:
            builder.add(
                min(100, inputs.open_incident_reports * 30),
                0.4,
                f"{inputs.open_incident_reports} open incident reports",
            )
        if inputs.high_priority_incidents is not None and inputs.high_priority_incidents > 0:
            builder.add(80, 0.35, f"{inputs.high_priority_incidents} high priority incidents")
        if inputs.incidents_involve_minors is not None and inputs.incidents_involve_minors > 0:
            builder.add(100, 0.25, f"{inputs.incidents_involve_minors} incidents involving minors")
        return builder.build()

    def score_engagement(self, inputs: OrganizationRiskInputs) -> CategoryResult:
        builder = self._builder(RiskCategory.ENGAGEMENT)
        if inputs.student_inactivity_rate is not None:
            severity = clamp_severity(inputs.student_inactivity_rate * 100)
            builder.add(severity, 0.4, f"{round_half_up(severity)}% student inactivity")
        if inputs.mentor_overload_count is not None and inputs.mentor_overload_count > 0:
            builder.add(
                min(100, inputs.mentor_overload_count * 25),
                0.3,
                f"{inputs.mentor_overload_count} overloaded mentors",
            )
        if inputs.unusual_message_patterns is True:
            builder.add(70, 0.3, "Unusual messaging patterns detected")
        return builder.build()

    def score_categories(self, inputs: OrganizationRiskInputs) -> List[CategoryResult]:
        # Order is observable: reasons keep the order factors are emitted in.
        return [
            self.score_activity(inputs),
            self.score_compliance(inputs),
            self.score_safety(inputs),
            self.score_engagement(inputs),
        ]
