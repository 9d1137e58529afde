from typing import Dict, List, Sequence

from app.models.risk import RiskCategory, RiskFactor, RiskLevel

SIGNIFICANT_SEVERITY = 50

CATEGORY_ACTIONS: Dict[RiskCategory, List[str]] = {
    RiskCategory.SAFETY: [
        "Immediately review and address all open incident reports",
        "Conduct safety audit and implement corrective actions",
    ],
    RiskCategory.COMPLIANCE: [
        "Complete all pending compliance submissions",
        "Update expired compliance documents",
        "Schedule compliance review meeting",
    ],
    RiskCategory.ACTIVITY: [
        "Increase program activity and engagement",
        "Reach out to organization contacts to ensure continued participation",
    ],
    RiskCategory.ENGAGEMENT: [
        "Re-engage inactive students and mentors",
        "Balance mentor workloads to prevent burnout",
    ],
}

ESCALATION_ACTIONS = [
    "Schedule urgent review meeting with organization leadership",
    "Consider temporary suspension until issues are resolved",
]

ESCALATION_LEVELS = {RiskLevel.HIGH, RiskLevel.CRITICAL}


def _significant(factors: Sequence[RiskFactor]) -> List[RiskFactor]:
    return [factor for factor in factors if factor.value > SIGNIFICANT_SEVERITY]


def generate_reasons(factors: Sequence[RiskFactor]) -> List[str]:
    return [factor.description for factor in _significant(factors)]


def generate_recommendations(factors: Sequence[RiskFactor], level: RiskLevel) -> List[str]:
    """Fixed actions per category with a significant factor, then escalation for high/critical."""
    flagged = {factor.category for factor in _significant(factors)}

    actions: List[str] = []
    for category, category_actions in CATEGORY_ACTIONS.items():
        if category in flagged:
            actions.extend(category_actions)

    if level in ESCALATION_LEVELS:
        actions.extend(ESCALATION_ACTIONS)
    return actions
