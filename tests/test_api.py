"""API endpoint tests for the FinClub gateway."""
import json
import os
import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from portfolio_service.api.dependencies import (
    get_investor_service,
    get_session_orchestrator,
    is_allowed_host,
)
from portfolio_service.cache import CacheStore
from portfolio_service.config import settings
from portfolio_service.main import app
from portfolio_service.services.finclub_client import UpstreamResponse
from portfolio_service.services.investor import InvestorService
from portfolio_service.services.session import SessionOrchestrator

SIGN_IN_BODY = {"data": {"user": {"ur_id": 1, "ur_email": "investor@example.com"}, "token": "abc"}}
OVERVIEW_BODY = {"data": {"total_credit": 1200, "total_debit": 200}}


@pytest.fixture
def finclub():
    mock_client = AsyncMock()
    mock_client.login.return_value = UpstreamResponse(200, SIGN_IN_BODY)
    mock_client.get_escrow_account_overview.return_value = UpstreamResponse(200, OVERVIEW_BODY)
    return mock_client


@pytest.fixture
def client(tmp_path, finclub):
    """Test client wired to a temporary cache and a mocked FinClub API."""
    app.dependency_overrides[get_session_orchestrator] = lambda: SessionOrchestrator(
        client=finclub,
        store=CacheStore(),
        cache_root=tmp_path,
        mail_address="investor@example.com",
        password="s3cret",
    )
    app.dependency_overrides[get_investor_service] = lambda: InvestorService(
        client=finclub,
        store=CacheStore(),
        cache_root=tmp_path,
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Test the health check endpoint."""

    def setup_method(self):
        self.client = TestClient(app)

    def test_health_check(self):
        """Health endpoint should return ok status."""
        response = self.client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.service_name


class TestMetricsEndpoint:
    """Test the Prometheus metrics endpoint."""

    def test_metrics_endpoint(self, client):
        client.post("/FinClub/Authentication/Login")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "finclub_cache_lookups_total" in response.text
        assert "http_requests_total" in response.text


class TestLoginEndpoint:
    """Test /FinClub/Authentication/Login."""

    def test_first_login_signs_in_and_caches(self, client, finclub, tmp_path):
        response = client.post("/FinClub/Authentication/Login")

        assert response.status_code == 200
        assert response.json() == {"ur_id": 1, "ur_email": "investor@example.com", "token": "abc"}
        assert response.headers["X-Cache"] == "created"
        assert "X-Request-ID" in response.headers
        assert (tmp_path / "authentication" / "response.json").exists()
        finclub.login.assert_awaited_once()

    def test_second_login_is_served_from_cache(self, client, finclub):
        client.post("/FinClub/Authentication/Login")

        response = client.get("/FinClub/Authentication/Login")

        assert response.status_code == 200
        assert response.headers["X-Cache"] == "hit"
        assert response.json()["token"] == "abc"
        finclub.login.assert_awaited_once()

    def test_expired_cache_is_refreshed(self, client, finclub, tmp_path):
        path = tmp_path / "authentication" / "response.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"token": "stale"}))
        two_hours_ago = time.time() - 7200
        os.utime(path, (two_hours_ago, two_hours_ago))

        response = client.post("/FinClub/Authentication/Login")

        assert response.status_code == 200
        assert response.headers["X-Cache"] == "overwritten"
        assert response.json()["token"] == "abc"

    def test_upstream_failure_returns_503(self, client, finclub, tmp_path):
        finclub.login.return_value = UpstreamResponse(500, None)

        response = client.post("/FinClub/Authentication/Login")

        assert response.status_code == 503
        assert "error" in response.json()
        assert "X-Cache" not in response.headers
        assert not (tmp_path / "authentication" / "response.json").exists()

    def test_request_id_is_echoed(self, client):
        response = client.post("/FinClub/Authentication/Login", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"


class TestEscrowAccountOverviewEndpoint:
    """Test /FinClub/Investor/EscrowAccountOverview."""

    def test_without_session_returns_404(self, client, finclub):
        response = client.get("/FinClub/Investor/EscrowAccountOverview")

        assert response.status_code == 404
        assert response.json() == {"error": "The file does not exist."}
        finclub.get_escrow_account_overview.assert_not_awaited()

    def test_after_login_uses_cached_token(self, client, finclub):
        client.post("/FinClub/Authentication/Login")

        response = client.get("/FinClub/Investor/EscrowAccountOverview")

        assert response.status_code == 200
        assert response.json() == OVERVIEW_BODY
        finclub.get_escrow_account_overview.assert_awaited_once_with("abc")

    def test_invalid_token_returns_403(self, client, tmp_path):
        path = tmp_path / "authentication" / "response.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"ur_id": 1, "token": ""}))

        response = client.get("/FinClub/Investor/EscrowAccountOverview")

        assert response.status_code == 403


class TestEscrowAccountSummaryEndpoint:
    """Test /FinClub/Investor/EscrowAccountSummary."""

    def test_summary(self, client):
        client.post("/FinClub/Authentication/Login")

        response = client.get("/FinClub/Investor/EscrowAccountSummary")

        assert response.status_code == 200
        assert response.json() == {"credit": 1200.0, "debit": 200.0}


class TestOriginAllowList:
    """Requests from hosts outside the allow-list are rejected."""

    def test_rejected_origin_returns_403(self, client, finclub, monkeypatch):
        monkeypatch.setattr(settings, "allowed_client_hosts", ["10.0.0.0/8"])

        response = client.post("/FinClub/Authentication/Login")

        assert response.status_code == 403
        assert response.json() == {"error": "Access from this origin is not allowed."}
        finclub.login.assert_not_awaited()

    def test_allowed_origin_passes(self, client, monkeypatch):
        monkeypatch.setattr(settings, "allowed_client_hosts", ["testclient"])

        response = client.post("/FinClub/Authentication/Login")

        assert response.status_code == 200

    @pytest.mark.parametrize("host, allowed, expected", [
        ("203.0.113.7", [], True),
        ("203.0.113.7", ["203.0.113.7"], True),
        ("203.0.113.7", ["203.0.113.0/24"], True),
        ("203.0.113.7", ["198.51.100.0/24"], False),
        ("::1", ["::1/128"], True),
        ("testclient", ["10.0.0.0/8"], False),
        (None, ["10.0.0.0/8"], False),
        ("10.1.2.3", ["not-a-network", "10.0.0.0/8"], True),
    ])
    def test_is_allowed_host(self, host, allowed, expected):
        assert is_allowed_host(host, allowed) is expected
