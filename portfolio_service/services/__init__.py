"""Service layer for the Investment Portfolio gateway."""
from portfolio_service.services.finclub_client import FinClubClient
from portfolio_service.services.investor import InvestorService
from portfolio_service.services.session import SessionOrchestrator

__all__ = ["FinClubClient", "InvestorService", "SessionOrchestrator"]
