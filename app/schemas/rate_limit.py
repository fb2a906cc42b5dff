"""Pydantic schemas for rate limit introspection endpoints."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class PolicyResponse(BaseModel):
    """Public view of one named rate limit policy."""

    name: str = Field(..., description="Registry name used by routes (e.g., 'auth').")
    window_seconds: int = Field(..., description="Length of the sliding window in seconds.")
    max_requests: int = Field(..., description="Attempts permitted inside one window.")
    key_prefix: str = Field(..., description="Store namespace owned by this policy.")


class PolicyListResponse(BaseModel):
    """All policies registered at startup."""

    policies: List[PolicyResponse] = Field(default_factory=list)


class RateLimitHealthResponse(BaseModel):
    """Operational status of the shared window store."""

    enabled: bool = Field(..., description="Whether protected routes run rate limit checks.")
    store_configured: bool = Field(
        ..., description="False when no Redis URL is set; checks always fail open."
    )
    store_available: bool = Field(
        ..., description="Whether the store answered a ping within the deadline."
    )
    degraded: bool = Field(
        ..., description="True when checks are currently failing open."
    )
