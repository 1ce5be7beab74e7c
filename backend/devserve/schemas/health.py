"""
DevServe — Pydantic Response Schemas
======================================

What:  Response models for the JSON endpoints (currently only /health).
How:   FastAPI serializes route return values through these models and
       documents them in the OpenAPI schema.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service status plus the sizes of the process-local registries."""

    status: str = Field(description="Overall service status")
    version: str = Field(description="Application version")
    dev: bool = Field(description="Whether live reload is enabled")
    reload_channels: int = Field(ge=0, description="Open live-reload SSE channels")
    cached_assets: int = Field(ge=0, description="Vendor assets held in memory")
    rate_limit_buckets: int = Field(ge=0, description="Client identities tracked by the rate limiter")
    uptime_seconds: float = Field(description="Seconds since service started")
