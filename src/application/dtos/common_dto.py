"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Optional


class SuccessResponse(BaseModel):
    """Standard success response model."""
    ok: bool = Field(True, description="Indicates the operation was successful")
    message: Optional[str] = Field(None, description="Optional success message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", examples=["healthy"])


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", examples=["ok"])
    service: str = Field(..., description="Service name", examples=["calcportal-backend"])
    version: str = Field(..., description="API version", examples=["0.1.0"])
