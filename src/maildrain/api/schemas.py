"""API request/response schemas."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class DrainRequest(BaseModel):
    """Drain trigger request."""

    budget_seconds: Optional[float] = Field(
        None, gt=0, description="Remaining execution budget; sizes the mailbox lease"
    )
    event: Optional[dict[str, Any]] = Field(
        None, description="Triggering notification, logged and otherwise ignored"
    )


class DrainResponse(BaseModel):
    """Drain outcome response."""

    resource_id: str
    items_processed: int
    terminated_by: str


class LockStatusResponse(BaseModel):
    """Current mailbox lock row, if any."""

    resource_id: str
    locked: bool
    expires_at: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error body for failed drains."""

    code: str
    message: str
    outcome: Optional[DrainResponse] = None
