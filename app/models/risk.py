import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def clamp_severity(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


class RiskCategory(str, Enum):
    ACTIVITY = "activity"
    COMPLIANCE = "compliance"
    SAFETY = "safety"
    ENGAGEMENT = "engagement"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CalculatedBy(str, Enum):
    AI = "ai"
    MANUAL = "manual"


class RiskModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class OrganizationRiskInputs(RiskModel):
    """Raw signals for one organization, derived by the caller from stored records.

    ``None`` means "no signal". Nothing here is range-checked; scoring clamps
    each factor instead.
    """

    organization_id: str
    organization_name: str

    days_inactive: Optional[int] = None
    monthly_events: Optional[int] = None
    event_cancellations: Optional[int] = None

    compliance_score: Optional[float] = None
    missed_compliance_deadlines: Optional[int] = None
    expired_documents: Optional[int] = None

    open_incident_reports: Optional[int] = None
    high_priority_incidents: Optional[int] = None
    incidents_involve_minors: Optional[int] = None

    student_inactivity_rate: Optional[float] = None
    mentor_overload_count: Optional[int] = None
    unusual_message_patterns: Optional[bool] = None

    # Context only: never scored, forwarded to the narrator.
    pending_compliance_items: Optional[int] = None
    monthly_active_users: Optional[int] = None
    message_volume_change: Optional[float] = None
    high_risk_region: Optional[bool] = None
    new_organization: Optional[bool] = None
    rapid_growth: Optional[bool] = None


class RiskFactor(RiskModel):
    category: RiskCategory
    weight: float = Field(ge=0.0, le=1.0)
    description: str
    value: float

    @field_validator("value")
    @classmethod
    def _clamp_value(cls, value: float) -> float:
        return clamp_severity(value)


class CategoryResult(RiskModel):
    category: RiskCategory
    factors: List[RiskFactor] = Field(default_factory=list)
    score: float = 0.0
    max_score: float


class Enhancement(RiskModel):
    """Narrated reasons/actions returned by the AI narrator."""

    reasons: List[str] = Field(min_length=1)
    actions: List[str] = Field(min_length=1)

    @field_validator("reasons", "actions")
    @classmethod
    def _strip_entries(cls, items: List[str]) -> List[str]:
        cleaned = [item.strip() for item in items]
        if any(not item for item in cleaned):
            raise ValueError("entries must be non-blank strings")
        return cleaned


class RiskScore(RiskModel):
    organization_id: str
    organization_name: str
    score: int = Field(ge=0, le=100)
    level: RiskLevel
    reasons: List[str]
    recommended_actions: List[str]
    factors: List[RiskFactor]
    calculated_at: datetime
    calculated_by: CalculatedBy
