"""API route handlers for the FinClub gateway."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from portfolio_service.api.dependencies import (
    get_investor_service,
    get_session_orchestrator,
    require_allowed_origin,
)
from portfolio_service.logging import get_logger
from portfolio_service.schemas import StatusEnvelope
from portfolio_service.services.investor import InvestorService
from portfolio_service.services.session import SessionOrchestrator

logger = get_logger(__name__)

router = APIRouter(
    prefix="/FinClub",
    tags=["finclub"],
    dependencies=[Depends(require_allowed_origin)],
)


def envelope_response(envelope: StatusEnvelope) -> JSONResponse:
    """Render an envelope: its status as the HTTP status, its data or error as the body."""
    headers = {"X-Cache": envelope.cache} if envelope.cache else None
    content = envelope.data if envelope.error is None else {"error": envelope.error}
    return JSONResponse(status_code=envelope.status, content=content, headers=headers)


@router.api_route("/Authentication/Login", methods=["GET", "POST"])
async def login(orchestrator: SessionOrchestrator = Depends(get_session_orchestrator)):
    """
    Authenticate the investor account.

    Serves the cached sign-in response while it is less than an hour old;
    otherwise signs in against FinClub and caches the new session.
    """
    logger.info("login_requested")
    envelope = await orchestrator.login()
    return envelope_response(envelope)


@router.get("/Investor/EscrowAccountOverview")
async def get_escrow_account_overview(service: InvestorService = Depends(get_investor_service)):
    """Return FinClub's escrow account overview, authorized with the cached token."""
    envelope = await service.get_escrow_account_overview()
    return envelope_response(envelope)


@router.get("/Investor/EscrowAccountSummary")
async def get_escrow_account_summary(service: InvestorService = Depends(get_investor_service)):
    """Return the escrow account's credit and debit totals."""
    envelope = await service.get_escrow_account_summary()
    return envelope_response(envelope)
