"""Tests for the FinClub API client against a stubbed httpx transport."""
import asyncio
import json

import httpx
import pytest

from portfolio_service.errors import FinClubTransportError
from portfolio_service.services.finclub_client import (
    FinClubClient,
    UpstreamResponse,
    build_login_payload,
)

BASE_URL = "https://finclub.test:8080"


def make_client(handler) -> FinClubClient:
    return FinClubClient(base_url=BASE_URL, timeout=5.0, transport=httpx.MockTransport(handler))


class TestBuildLoginPayload:

    def test_fixed_fields(self):
        payload = build_login_payload("investor@example.com", "s3cret")

        assert payload == {
            "mode": "login",
            "sign_in_mode": "1",
            "type": "users",
            "email": "investor@example.com",
            "password": "s3cret",
            "brn": "",
            "type_of": "I",
        }


class TestLogin:

    def test_posts_json_credentials_to_sign_in_endpoint(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers.get("content-type")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"user": {"ur_id": 1}, "token": "abc"}})

        payload = build_login_payload("investor@example.com", "s3cret")
        response = asyncio.run(make_client(handler).login(payload))

        assert seen["method"] == "POST"
        assert seen["url"] == f"{BASE_URL}/api/WB/authentication/sign-in/"
        assert seen["content_type"] == "application/json"
        assert seen["body"] == payload
        assert response == UpstreamResponse(200, {"data": {"user": {"ur_id": 1}, "token": "abc"}})

    def test_returns_upstream_error_status_without_raising(self):
        def handler(request):
            return httpx.Response(401, json={"message": "invalid credentials"})

        response = asyncio.run(make_client(handler).login({}))

        assert response.status_code == 401
        assert response.body == {"message": "invalid credentials"}
        assert not response.is_success

    def test_empty_body_is_none(self):
        def handler(request):
            return httpx.Response(500)

        response = asyncio.run(make_client(handler).login({}))

        assert response.status_code == 500
        assert response.body is None

    def test_non_json_body_is_none(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        response = asyncio.run(make_client(handler).login({}))

        assert response.body is None

    def test_connection_error_raises_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FinClubTransportError) as exc_info:
            asyncio.run(make_client(handler).login({}))

        assert exc_info.value.operation == "login"
        assert exc_info.value.error_type == "connection_error"

    def test_timeout_raises_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FinClubTransportError) as exc_info:
            asyncio.run(make_client(handler).login({}))

        assert exc_info.value.error_type == "timeout"


class TestEscrowAccountOverview:

    def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(200, json={"data": {"total_credit": 10, "total_debit": 2}})

        response = asyncio.run(make_client(handler).get_escrow_account_overview("abc"))

        assert seen["method"] == "GET"
        assert seen["url"] == (
            f"{BASE_URL}/api/WB/lenderaccount/overview/investor/getEscrowAccountOverview"
        )
        assert seen["authorization"] == "Bearer abc"
        assert response.status_code == 200
        assert response.body["data"]["total_credit"] == 10

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(FinClubTransportError) as exc_info:
            asyncio.run(make_client(handler).get_escrow_account_overview("abc"))

        assert exc_info.value.operation == "escrow_account_overview"


class TestBaseUrl:

    def test_trailing_slash_is_trimmed(self):
        client = FinClubClient(base_url=f"{BASE_URL}/")

        assert client.login_url == f"{BASE_URL}/api/WB/authentication/sign-in/"
