"""
Test the HTTP trigger, activity feed and system endpoints.
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from fee_flywheel.api.dependencies import get_activity_feed, get_orchestrator, get_settings
from fee_flywheel.api.main import create_app
from fee_flywheel.core.exceptions import ConfigurationError
from fee_flywheel.services.reinvest.core.types import (
    PassReport,
    PassStats,
    TradeOutcome,
    WalletRunResult,
    WalletState,
)
from tests.fakes import ALPHA, ALPHA_MINT, TARGET_MINT, make_settings


SECRET = "s3cret-cron-token"
AUTH = {"Authorization": f"Bearer {SECRET}"}


class StubOrchestrator:
    def __init__(self, report=None, error=None):
        self.report = report
        self.error = error
        self.runs = 0

    async def run_pass(self):
        self.runs += 1
        if self.error:
            raise self.error
        return self.report


class StubFeed:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.calls = []

    async def list_recent(self, kind="all", limit=20):
        self.calls.append((kind, limit))
        return self.rows[:limit]


def populated_report() -> PassReport:
    now = datetime.now(timezone.utc)
    result = WalletRunResult(
        wallet_id=ALPHA.id,
        wallet_public_key=ALPHA.public_key,
        token_mint=ALPHA_MINT,
        token_name="Alpha",
        state=WalletState.DONE_SPLIT,
        claimed_amount=Decimal("0.05"),
        usable_amount=Decimal("0.048"),
        target_buy=TradeOutcome(success=True, amount=Decimal("0.024"), signature="sig-t"),
        self_buy=TradeOutcome(success=True, amount=Decimal("0.024"), signature="sig-s"),
    )
    stats = PassStats(target_token=TARGET_MINT, started_at=now, finished_at=now, total_wallets=1)
    stats.record(result)
    return PassReport(stats=stats, results=[result])


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: make_settings(cron_secret=SECRET)
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


def use_orchestrator(app, orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return orchestrator


def test_cron_requires_bearer_token(app, client):
    orchestrator = use_orchestrator(app, StubOrchestrator(populated_report()))

    response = client.get("/api/cron")

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "UNAUTHORIZED"
    assert orchestrator.runs == 0


def test_cron_rejects_wrong_secret(app, client):
    orchestrator = use_orchestrator(app, StubOrchestrator(populated_report()))

    response = client.post("/api/cron", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert orchestrator.runs == 0


def test_cron_without_configured_secret(app, client):
    app.dependency_overrides[get_settings] = lambda: make_settings(cron_secret=None)
    use_orchestrator(app, StubOrchestrator(populated_report()))

    response = client.get("/api/cron", headers=AUTH)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "CONFIGURATION_ERROR"


def test_cron_configuration_error_from_pass(app, client):
    use_orchestrator(app, StubOrchestrator(error=ConfigurationError("TARGET_TOKEN_CA is not configured")))

    response = client.get("/api/cron", headers=AUTH)

    assert response.status_code == 500
    assert response.json()["error_code"] == "CONFIGURATION_ERROR"
    assert response.json()["message"] == "TARGET_TOKEN_CA is not configured"


def test_cron_infrastructure_failure(app, client):
    use_orchestrator(app, StubOrchestrator(error=RuntimeError("Database not initialized")))

    response = client.get("/api/cron", headers=AUTH)

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "PASS_FAILED"


def test_cron_empty_fleet(app, client):
    use_orchestrator(app, StubOrchestrator(PassReport(stats=PassStats(target_token=TARGET_MINT))))

    response = client.get("/api/cron", headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "No active wallets to process"
    assert body["processed"] == 0


@pytest.mark.parametrize("method", ["GET", "POST"])
def test_cron_returns_pass_summary(app, client, method):
    orchestrator = use_orchestrator(app, StubOrchestrator(populated_report()))

    response = client.request(method, "/api/cron", headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert orchestrator.runs == 1
    assert body["success"] is True
    assert body["total_wallets"] == 1
    assert body["processed"] == 1
    assert body["target_token"] == TARGET_MINT
    assert body["stats"]["bought"] == 1
    assert body["stats"]["total_reinvested_sol"] == pytest.approx(0.048)
    assert body["results"][0]["state"] == "done_split"
    assert body["results"][0]["target_buy"]["signature"] == "sig-t"


def test_activity_feed(app, client):
    row = SimpleNamespace(
        id=7,
        wallet_id=ALPHA.id,
        activity_type="buy_target_token",
        activity_description="Bought 0.024 SOL of target",
        token_name=None,
        transaction_signature="sig-t",
        amount_sol=Decimal("0.024"),
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    feed = StubFeed([row])
    app.dependency_overrides[get_activity_feed] = lambda: feed

    response = client.get("/api/activity", params={"type": "buy", "limit": 500})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["activities"][0]["amount_sol"] == pytest.approx(0.024)
    assert feed.calls == [("buy", 50)]


def test_activity_feed_defaults(app, client):
    feed = StubFeed()
    app.dependency_overrides[get_activity_feed] = lambda: feed

    response = client.get("/api/activity")

    assert response.json()["count"] == 0
    assert feed.calls == [("all", 20)]


def test_activity_feed_rejects_unknown_type(app, client):
    app.dependency_overrides[get_activity_feed] = lambda: StubFeed()

    response = client.get("/api/activity", params={"type": "everything"})

    assert response.status_code == 422


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_health_reports_unavailable_database(client):
    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["services"]["database"] == "unhealthy"
