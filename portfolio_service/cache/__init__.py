"""On-disk response cache."""
from portfolio_service.cache.store import CacheStore, WriteOutcome
from portfolio_service.cache.validator import CacheValidity, classify

__all__ = ["CacheStore", "CacheValidity", "WriteOutcome", "classify"]
