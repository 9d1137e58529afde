import logging
import secrets
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app.agents.risk_narrator import build_narrator
from app.config import settings
from app.db.database import Base, SessionLocal, engine
from app.models.risk import RiskScore
from app.models.schemas import LoginRequest, LoginResponse, RiskScoreRequest
from app.services.risk_history_service import RiskHistoryService
from app.services.risk_scoring_service import RiskScoringService
from app.services.service_errors import ServiceError
from app.utils.logging_utils import configure_logging
from app.utils.security import create_access_token, get_current_admin

configure_logging()
logger = logging.getLogger("org-risk")

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Organization Risk & Health Scoring", lifespan=lifespan)
app.state.limiter = limiter
allowed_origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(
    RateLimitExceeded,
    lambda request, exc: JSONResponse(status_code=429, content={"detail": "Rate limit exceeded", "code": "rate_limited"}),
)
app.add_middleware(SlowAPIMiddleware)


scoring_service = RiskScoringService(narrator=build_narrator(settings))
history_service = RiskHistoryService(lambda: SessionLocal())


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest) -> LoginResponse:
    valid_user = secrets.compare_digest(payload.username, settings.admin_username)
    valid_password = secrets.compare_digest(payload.password, settings.admin_password)
    if not (valid_user and valid_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return LoginResponse(access_token=create_access_token(payload.username))


@app.post("/risk-score", response_model=RiskScore)
@limiter.limit(settings.rate_limit)
def score_organization(request: Request, payload: RiskScoreRequest, user: str = Depends(get_current_admin)) -> RiskScore:
    logger.info(
        "Risk score request",
        extra={"user": user, "organization_id": payload.organization_id, "use_ai": payload.use_ai},
    )
    risk = scoring_service.calculate(payload.to_inputs(), use_ai=payload.use_ai)
    history_service.record(risk)
    return risk


@app.get("/organizations/{organization_id}/risk-score", response_model=RiskScore)
def latest_risk_score(organization_id: str, user: str = Depends(get_current_admin)) -> RiskScore:
    try:
        return history_service.latest(organization_id)
    except ServiceError as exc:
        logger.warning(
            "Risk score lookup failed",
            extra={"user": user, "organization_id": organization_id, "error": exc.message, "code": exc.code},
        )
        raise HTTPException(status_code=exc.status_code, detail=exc.detail()) from exc
