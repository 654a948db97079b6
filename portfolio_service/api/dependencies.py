"""FastAPI dependencies: origin allow-list and service construction."""
import ipaddress
from typing import Iterable, Optional

from fastapi import Request

from portfolio_service.cache import CacheStore
from portfolio_service.config import settings
from portfolio_service.errors import InvalidAccessError
from portfolio_service.logging import get_logger
from portfolio_service.services.finclub_client import FinClubClient
from portfolio_service.services.investor import InvestorService
from portfolio_service.services.session import SessionOrchestrator

logger = get_logger(__name__)


def is_allowed_host(client_host: Optional[str], allowed: Iterable[str]) -> bool:
    """
    Check a client address against a list of IP addresses and CIDR networks.

    An empty allow-list admits every host. Entries that are neither an
    address nor a network are compared as plain strings, which lets
    hostnames such as ``testclient`` through.
    """
    allowed = list(allowed)
    if not allowed:
        return True
    if not client_host:
        return False

    try:
        address = ipaddress.ip_address(client_host)
    except ValueError:
        address = None

    for entry in allowed:
        if entry == client_host:
            return True
        if address is None:
            continue
        try:
            if address in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


async def require_allowed_origin(request: Request) -> None:
    """Reject requests whose client host is outside the configured allow-list."""
    client_host = request.client.host if request.client else None
    if not is_allowed_host(client_host, settings.allowed_client_hosts):
        logger.warning("origin_rejected", client_host=client_host)
        raise InvalidAccessError(client_host)


def get_finclub_client() -> FinClubClient:
    return FinClubClient(
        base_url=settings.finclub_base_url,
        timeout=settings.upstream_timeout_seconds,
    )


def get_session_orchestrator() -> SessionOrchestrator:
    """Build the authentication orchestrator from the application settings."""
    return SessionOrchestrator(
        client=get_finclub_client(),
        store=CacheStore(),
        cache_root=settings.cache_path,
        mail_address=settings.finclub_mail_address,
        password=settings.finclub_password,
        ttl_seconds=settings.cache_ttl_seconds,
    )


def get_investor_service() -> InvestorService:
    """Build the investor service from the application settings."""
    return InvestorService(
        client=get_finclub_client(),
        store=CacheStore(),
        cache_root=settings.cache_path,
        ttl_seconds=settings.cache_ttl_seconds,
    )
