"""HTTP API for the FinClub gateway."""
from portfolio_service.api.routes import router

__all__ = ["router"]
