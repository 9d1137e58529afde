import logging
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import RiskScoreHistory
from app.models.risk import RiskScore
from app.services.service_errors import ServiceError

logger = logging.getLogger(__name__)


class RiskHistoryService:
    """Stores produced risk scores and reads back the latest one per organization."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def record(self, risk: RiskScore) -> bool:
        db = self.session_factory()
        try:
            db.add(
                RiskScoreHistory(
                    organization_id=risk.organization_id,
                    organization_name=risk.organization_name,
                    score=risk.score,
                    level=risk.level.value,
                    calculated_by=risk.calculated_by.value,
                    result=risk.model_dump(mode="json", by_alias=True),
                )
            )
            db.commit()
            return True
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Failed to persist risk score",
                extra={"organization_id": risk.organization_id, "error": str(exc)},
            )
            return False
        finally:
            db.close()

    def latest(self, organization_id: str) -> RiskScore:
        db = self.session_factory()
        try:
            row = db.execute(
                select(RiskScoreHistory)
                .where(RiskScoreHistory.organization_id == organization_id)
                .order_by(RiskScoreHistory.id.desc())
                .limit(1)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Failed to load risk score", extra={"organization_id": organization_id, "error": str(exc)})
            raise ServiceError("Risk score history unavailable", status_code=503, code="history_unavailable") from exc
        finally:
            db.close()

        if row is None:
            raise ServiceError(
                f"No risk score recorded for organization {organization_id}",
                status_code=404,
                code="risk_score_not_found",
            )
        return RiskScore.model_validate(row.result)
