"""
FastAPI route modules for the Document Repository API.
"""

from .resources import citations_router, drafts_router, documents_router, types_router
from .queues import router as queues_router

__all__ = [
    "citations_router",
    "drafts_router",
    "documents_router",
    "types_router",
    "queues_router",
]
