"""Pydantic schemas for request/response validation."""
from typing import Any, Optional

from pydantic import BaseModel, Field


class StatusEnvelope(BaseModel):
    """Uniform result of every orchestrated operation."""
    status: int = Field(..., description="HTTP-style status code")
    data: Optional[Any] = Field(None, description="Payload; null when status is a failure")
    error: Optional[str] = Field(None, description="Human readable failure message")
    cache: Optional[str] = Field(None, description="hit, created or overwritten")

    @property
    def ok(self) -> bool:
        return self.status < 400

    @classmethod
    def failure(cls, status: int, error: str) -> "StatusEnvelope":
        return cls(status=status, data=None, error=error)


class EscrowAccountSummary(BaseModel):
    """Credit/debit view of the escrow account overview."""
    credit: float = Field(..., description="Total credited to the escrow account")
    debit: float = Field(..., description="Total debited from the escrow account")


class HealthResponse(BaseModel):
    """Response body for GET /health."""
    status: str
    service: str
