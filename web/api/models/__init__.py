"""
Pydantic models for the Document Repository API.
"""

from .status import CacheStats, ServiceInfo, HealthStatus

__all__ = [
    "CacheStats",
    "ServiceInfo",
    "HealthStatus",
]
