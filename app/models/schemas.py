from typing import Optional

from pydantic import BaseModel, Field

from app.models.risk import OrganizationRiskInputs


class LoginRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=3, max_length=128)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RiskScoreRequest(OrganizationRiskInputs):
    """Scoring request body; same fields as the engine input, range-checked."""

    organization_id: str = Field(min_length=1, max_length=128)
    organization_name: str = Field(min_length=1, max_length=256)

    days_inactive: Optional[int] = Field(default=None, ge=0)
    monthly_events: Optional[int] = Field(default=None, ge=0)
    event_cancellations: Optional[int] = Field(default=None, ge=0)

    compliance_score: Optional[float] = Field(default=None, ge=0, le=100)
    missed_compliance_deadlines: Optional[int] = Field(default=None, ge=0)
    expired_documents: Optional[int] = Field(default=None, ge=0)

    open_incident_reports: Optional[int] = Field(default=None, ge=0)
    high_priority_incidents: Optional[int] = Field(default=None, ge=0)
    incidents_involve_minors: Optional[int] = Field(default=None, ge=0)

    student_inactivity_rate: Optional[float] = Field(default=None, ge=0, le=1)
    mentor_overload_count: Optional[int] = Field(default=None, ge=0)

    pending_compliance_items: Optional[int] = Field(default=None, ge=0)
    monthly_active_users: Optional[int] = Field(default=None, ge=0)

    use_ai: bool = True

    def to_inputs(self) -> OrganizationRiskInputs:
        return OrganizationRiskInputs(**self.model_dump(exclude={"use_ai"}))
