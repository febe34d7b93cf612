"""HTTP routers for the outreach service."""

from .documents import router as documents_router
from .emails import router as emails_router

__all__ = ["documents_router", "emails_router"]
