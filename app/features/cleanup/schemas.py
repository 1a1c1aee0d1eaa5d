"""Pydantic schemas for the maintenance API."""

from datetime import datetime

from pydantic import BaseModel, Field


class CleanupResponse(BaseModel):
    """Response body for POST /maintenance/cleanup."""

    success: bool = Field(True, description="Whether the purge completed")
    message: str = Field(..., description="Human-readable outcome")
    deleted_error_records: int = Field(..., ge=0, description="Error records removed")
    timestamp: datetime = Field(..., description="When the purge completed (UTC)")
