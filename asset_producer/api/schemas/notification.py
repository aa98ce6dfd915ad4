"""
Pydantic schemas for the notification and dependency check endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class NotificationSummary(BaseModel):
    """Summary returned once a scan notification has been processed."""

    site_id: str = Field(..., description="Site that was scanned.")
    scan_id: str = Field(..., description="Scan that triggered the run.")
    assets_fetched: int = Field(default=0, ge=0, description="Raw assets retrieved from Nexpose.")
    assets_produced: int = Field(default=0, ge=0, description="Asset events delivered downstream.")
    fetch_errors: int = Field(default=0, ge=0, description="Pages that could not be fetched.")
    validation_errors: int = Field(default=0, ge=0, description="Assets rejected by validation.")
    producer_errors: int = Field(default=0, ge=0, description="Failed deliveries.")


class DependencyStatus(BaseModel):
    """Result of the dependency check."""

    status: str = Field(..., examples=["ok"])
