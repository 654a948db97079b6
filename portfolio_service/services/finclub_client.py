"""Client for the FinClub lending-platform API."""
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from portfolio_service.config import settings
from portfolio_service.errors import FinClubTransportError
from portfolio_service.logging import get_logger, redact_credentials
from portfolio_service import metrics

logger = get_logger(__name__)

SIGN_IN_PATH = "/api/WB/authentication/sign-in/"
INVESTOR_OVERVIEW_PATH = "/api/WB/lenderaccount/overview/investor"
ESCROW_ACCOUNT_OVERVIEW_PATH = f"{INVESTOR_OVERVIEW_PATH}/getEscrowAccountOverview"


@dataclass
class UpstreamResponse:
    """Status code and decoded JSON body returned by FinClub."""
    status_code: int
    body: Optional[Any] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


def build_login_payload(mail_address: str, password: str) -> dict[str, str]:
    """Build the fixed investor sign-in payload expected by FinClub."""
    return {
        "mode": "login",
        "sign_in_mode": "1",
        "type": "users",
        "email": mail_address,
        "password": password,
        "brn": "",
        "type_of": "I",
    }


class FinClubClient:
    """Client for the FinClub sign-in and investor overview endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the FinClub client.

        Args:
            base_url: Base URL of the FinClub API. Defaults to settings.finclub_base_url.
            timeout: Request timeout in seconds. Defaults to settings.upstream_timeout_seconds.
            transport: Optional httpx transport, used to stub the network in tests.
        """
        self.base_url = (base_url or settings.finclub_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.upstream_timeout_seconds
        self.transport = transport

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{SIGN_IN_PATH}"

    @property
    def escrow_account_overview_url(self) -> str:
        return f"{self.base_url}{ESCROW_ACCOUNT_OVERVIEW_PATH}"

    async def login(self, credentials: dict[str, Any]) -> UpstreamResponse:
        """
        Sign in with the given credential payload.

        Args:
            credentials: Payload built by `build_login_payload`

        Returns:
            The upstream status code and JSON body, whatever they are

        Raises:
            FinClubTransportError: If the API cannot be reached
        """
        logger.info("finclub_login_payload", payload=redact_credentials(credentials))
        return await self._send(
            "login",
            "POST",
            self.login_url,
            json=credentials,
            headers={"Content-Type": "application/json"},
        )

    async def get_escrow_account_overview(self, token: str) -> UpstreamResponse:
        """
        Fetch the investor's escrow account overview.

        Raises:
            FinClubTransportError: If the API cannot be reached
        """
        return await self._send(
            "escrow_account_overview",
            "GET",
            self.escrow_account_overview_url,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> UpstreamResponse:
        start_time = time.perf_counter()

        logger.info("finclub_request_started", operation=operation, method=method, url=url)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                error_type = "timeout" if isinstance(e, httpx.TimeoutException) else "connection_error"

                logger.error(
                    "finclub_request_failed",
                    operation=operation,
                    duration_ms=round(duration_ms, 2),
                    error=str(e),
                    error_type=error_type,
                    outcome="error",
                )
                metrics.record_upstream_call(
                    operation, success=False, latency_seconds=duration_ms / 1000, error_type=error_type
                )
                raise FinClubTransportError(operation, str(e), error_type) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        body = _decode_body(response)

        if response.is_success:
            error_type = None
        elif body is None:
            error_type = "empty_body"
        else:
            error_type = "http_error"

        logger.info(
            "finclub_request_completed",
            operation=operation,
            status_code=response.status_code,
            has_body=body is not None,
            duration_ms=round(duration_ms, 2),
            outcome="success" if error_type is None else "error",
        )
        metrics.record_upstream_call(
            operation,
            success=error_type is None,
            latency_seconds=duration_ms / 1000,
            error_type=error_type,
        )

        return UpstreamResponse(status_code=response.status_code, body=body)


def _decode_body(response: httpx.Response) -> Optional[Any]:
    """Decode a JSON body, treating empty or non-JSON content as no body."""
    if not response.content or not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError:
        logger.warning(
            "finclub_response_not_json",
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
        )
        return None
