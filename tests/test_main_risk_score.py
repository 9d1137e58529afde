from fastapi.testclient import TestClient

from app.agents.risk_narrator import UnavailableNarrator
from app.main import app
from app.services.service_errors import ServiceError
from app.utils.security import create_access_token


def _auth_headers(role="admin"):
    token = create_access_token("admin", role=role)
    return {"Authorization": f"Bearer {token}"}


class _DummyDB:
    def __init__(self):
        self.added = []
        self.committed = False

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.committed = True

    def rollback(self):
        return None

    def close(self):
        return None


def _patch_app(monkeypatch, db=None):
    import app.main as main_mod

    db = db or _DummyDB()
    monkeypatch.setattr(main_mod.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(main_mod, "SessionLocal", lambda: db)
    monkeypatch.setattr(main_mod.scoring_service, "narrator", UnavailableNarrator())
    return main_mod, db


def test_health(monkeypatch):
    _patch_app(monkeypatch)
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_login_rejects_bad_credentials(monkeypatch):
    _patch_app(monkeypatch)
    with TestClient(app) as client:
        res = client.post("/auth/login", json={"username": "admin", "password": "wrong-password"})
    assert res.status_code == 401


def test_risk_score_returns_rule_based_record(monkeypatch):
    _, db = _patch_app(monkeypatch)

    with TestClient(app) as client:
        res = client.post(
            "/risk-score",
            headers={**_auth_headers(), "Content-Type": "application/json"},
            json={
                "organizationId": "org-9",
                "organizationName": "Eastside Coding Club",
                "complianceScore": 40,
                "expiredDocuments": 2,
                "openIncidentReports": 3,
            },
        )

    assert res.status_code == 200
    body = res.json()
    assert body["organizationId"] == "org-9"
    assert body["score"] == 25
    assert body["level"] == "medium"
    assert body["calculatedBy"] == "manual"
    assert body["reasons"] == [
        "Compliance score: 40%",
        "2 expired compliance documents",
        "3 open incident reports",
    ]
    assert body["recommendedActions"][0] == "Immediately review and address all open incident reports"
    assert len(body["factors"]) == 3
    assert db.committed is True
    assert db.added[0].organization_id == "org-9"
    assert db.added[0].score == 25


def test_risk_score_rejects_negative_counts(monkeypatch):
    _patch_app(monkeypatch)

    with TestClient(app) as client:
        res = client.post(
            "/risk-score",
            headers=_auth_headers(),
            json={"organizationId": "org-9", "organizationName": "Eastside", "openIncidentReports": -1},
        )

    assert res.status_code == 422


def test_risk_score_requires_admin_token(monkeypatch):
    _patch_app(monkeypatch)
    payload = {"organizationId": "org-9", "organizationName": "Eastside"}

    with TestClient(app) as client:
        bad_token = client.post("/risk-score", headers={"Authorization": "Bearer nope"}, json=payload)
        wrong_role = client.post("/risk-score", headers=_auth_headers(role="mentor"), json=payload)

    assert bad_token.status_code == 401
    assert wrong_role.status_code == 403


def test_latest_risk_score_returns_404_when_missing(monkeypatch):
    main_mod, _ = _patch_app(monkeypatch)

    def _raise(organization_id):
        raise ServiceError("missing", status_code=404, code="risk_score_not_found")

    monkeypatch.setattr(main_mod.history_service, "latest", _raise)

    with TestClient(app) as client:
        res = client.get("/organizations/org-404/risk-score", headers=_auth_headers())

    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "risk_score_not_found"


def test_latest_risk_score_returns_stored_record(monkeypatch):
    main_mod, _ = _patch_app(monkeypatch)
    risk = main_mod.scoring_service.calculate(
        main_mod.RiskScoreRequest(organization_id="org-5", organization_name="Harbor Mentors", days_inactive=90).to_inputs()
    )
    monkeypatch.setattr(main_mod.history_service, "latest", lambda organization_id: risk)

    with TestClient(app) as client:
        res = client.get("/organizations/org-5/risk-score", headers=_auth_headers())

    assert res.status_code == 200
    body = res.json()
    assert body["organizationName"] == "Harbor Mentors"
    assert body["score"] == 8
    assert body["level"] == "low"
