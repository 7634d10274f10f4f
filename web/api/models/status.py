"""
Pydantic models for service status endpoints.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Counters for one read-through cache."""
    entries: int = Field(..., description="Entries currently cached")
    capacity: int = Field(..., description="Maximum entries")
    hits: int = Field(default=0, description="Fetches answered from the cache")
    misses: int = Field(default=0, description="Fetches passed to the wrapped repository")
    evictions: int = Field(default=0, description="Entries evicted to make room")


class ServiceInfo(BaseModel):
    """Response model for the root endpoint."""
    status: str = Field(default="ok")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


class HealthStatus(BaseModel):
    """
    Response model for the health endpoint.

    `caches` is only present when the repository is wrapped in the
    read-through cache.
    """
    status: str = Field(default="healthy")
    location: str = Field(..., description="Where the repository keeps its records")
    caches: Optional[Dict[str, CacheStats]] = Field(
        default=None,
        description="Cache statistics per resource family"
    )
