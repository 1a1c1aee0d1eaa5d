"""Pydantic schemas for the error record query API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.shared.utils import parse_json_or_raw


class ErrorRecordResponse(BaseModel):
    """One aggregated error record.

    ``error_details`` is returned as structured JSON when the stored text
    parses, and as the raw stored string otherwise.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    file_name: str = Field(..., description="Uploaded workbook name")
    table_name: str = Field(..., description="Sheet/table the failures belong to")
    error_details: Any = Field(..., description="Row failures (parsed JSON or raw text)")
    error_count: int = Field(..., ge=0)
    logged_at: datetime

    @field_validator("error_details", mode="before")
    @classmethod
    def decode_details(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_json_or_raw(v)
        return v
