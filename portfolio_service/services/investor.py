"""Investor account flows that reuse the cached authentication session."""
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from portfolio_service.cache import CacheStore, CacheValidity, classify
from portfolio_service.cache.validator import DEFAULT_TTL_SECONDS
from portfolio_service.errors import (
    CacheDeserializationError,
    CacheNotFoundError,
    CachePermissionError,
    FinClubTransportError,
    InvalidTokenError,
)
from portfolio_service.logging import get_logger, log_envelope
from portfolio_service.schemas import EscrowAccountSummary, StatusEnvelope
from portfolio_service.services.finclub_client import FinClubClient
from portfolio_service.services.session import authentication_cache_file
from portfolio_service import metrics

logger = get_logger(__name__)

# Escrow overview fields reshaped into the credit/debit summary
CREDIT_FIELD = "total_credit"
DEBIT_FIELD = "total_debit"

FILE_NOT_FOUND = "The file does not exist."
SESSION_EXPIRED = "The authentication session has expired."
SESSION_INVALID = "The user authentication data is invalid."
TOKEN_INVALID = "The authentication token is invalid."
UPSTREAM_UNAVAILABLE = "The escrow account overview is unavailable."
OVERVIEW_MALFORMED = "The escrow account overview has an unexpected format."
UNEXPECTED_ERROR = "An unexpected error occurred."


def get_authentication_token(session: Optional[dict[str, Any]]) -> str:
    """
    Return the bearer token stored in a cached session.

    Raises:
        ValueError: If the session is missing or empty
        InvalidTokenError: If the token is missing, blank or not a string
    """
    if not session:
        raise ValueError("Authentication object is invalid.")
    token = session.get("token")
    if not isinstance(token, str) or not token.strip():
        raise InvalidTokenError(TOKEN_INVALID)
    return token


def summarize_escrow_overview(body: Any) -> EscrowAccountSummary:
    """
    Reshape an escrow overview body into a credit/debit summary.

    Accepts either the bare overview mapping or FinClub's usual
    ``{"data": {...}}`` wrapper. Numeric strings are accepted.

    Raises:
        ValueError: If either field is missing or not numeric
    """
    overview = body.get("data", body) if isinstance(body, dict) else None
    if not isinstance(overview, dict):
        raise ValueError("Escrow overview is not an object")

    missing = [field for field in (CREDIT_FIELD, DEBIT_FIELD) if overview.get(field) is None]
    if missing:
        raise ValueError(f"Escrow overview is missing {', '.join(missing)}")

    try:
        return EscrowAccountSummary(credit=overview[CREDIT_FIELD], debit=overview[DEBIT_FIELD])
    except ValidationError as e:
        raise ValueError(f"Escrow overview has non-numeric amounts: {e}") from e


class InvestorService:
    """
    Service for investor account data.

    The account overview is never cached: each call reads the cached
    authentication session for its token and goes to FinClub.
    """

    def __init__(
        self,
        client: FinClubClient,
        store: CacheStore,
        cache_root: Union[str, Path],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.store = store
        self.authentication_file = authentication_cache_file(cache_root)
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def get_escrow_account_overview(self) -> StatusEnvelope:
        """Fetch the escrow account overview with the cached token."""
        start_time = time.perf_counter()
        logger.info("escrow_account_overview_started")

        try:
            envelope = await self._fetch_overview()
        except Exception as e:
            logger.exception("escrow_account_overview_unexpected_error", error=str(e))
            envelope = StatusEnvelope.failure(500, UNEXPECTED_ERROR)

        self._finish("escrow_account_overview", envelope, start_time)
        return envelope

    async def get_escrow_account_summary(self) -> StatusEnvelope:
        """Fetch the escrow account overview and reduce it to credit and debit."""
        start_time = time.perf_counter()

        try:
            envelope = await self._fetch_overview()
            if envelope.ok:
                try:
                    summary = summarize_escrow_overview(envelope.data)
                except ValueError as e:
                    logger.warning("escrow_account_summary_malformed", error=str(e))
                    envelope = StatusEnvelope.failure(503, OVERVIEW_MALFORMED)
                else:
                    envelope = StatusEnvelope(status=envelope.status, data=summary.model_dump())
        except Exception as e:
            logger.exception("escrow_account_summary_unexpected_error", error=str(e))
            envelope = StatusEnvelope.failure(500, UNEXPECTED_ERROR)

        self._finish("escrow_account_summary", envelope, start_time)
        return envelope

    async def _fetch_overview(self) -> StatusEnvelope:
        try:
            token = self._load_token()
        except CacheNotFoundError:
            return StatusEnvelope.failure(404, FILE_NOT_FOUND)
        except CachePermissionError:
            return StatusEnvelope.failure(403, SESSION_INVALID)
        except _SessionExpired:
            return StatusEnvelope.failure(403, SESSION_EXPIRED)
        except InvalidTokenError:
            logger.error("authentication_token_invalid", path=str(self.authentication_file))
            return StatusEnvelope.failure(403, TOKEN_INVALID)
        except (CacheDeserializationError, ValueError) as e:
            logger.error("authentication_data_invalid", path=str(self.authentication_file), error=str(e))
            return StatusEnvelope.failure(503, SESSION_INVALID)

        try:
            response = await self.client.get_escrow_account_overview(token)
        except FinClubTransportError:
            return StatusEnvelope.failure(503, UPSTREAM_UNAVAILABLE)

        if response.body is None:
            logger.warning("escrow_account_overview_empty_body", status_code=response.status_code)
            return StatusEnvelope.failure(503, UPSTREAM_UNAVAILABLE)

        return StatusEnvelope(status=response.status_code, data=response.body)

    def _load_token(self) -> str:
        validity = classify(self.authentication_file, self.clock(), self.ttl_seconds)
        metrics.record_cache_lookup(validity.value)
        if validity is CacheValidity.ABSENT:
            raise CacheNotFoundError(str(self.authentication_file), "Authentication cache does not exist")
        if validity is CacheValidity.EXPIRED:
            raise _SessionExpired()

        session = self.store.read(self.authentication_file)
        return get_authentication_token(session)

    @staticmethod
    def _finish(operation: str, envelope: StatusEnvelope, start_time: float) -> None:
        log_envelope(
            logger,
            operation=operation,
            status=envelope.status,
            cache=None,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            error=envelope.error,
        )
        metrics.record_envelope(operation, envelope.status)


class _SessionExpired(Exception):
    """The cached session is older than the freshness window."""
