"""API route modules."""

from .documents import router as documents_router
from .health import router as health_router
from .reports import router as reports_router

__all__ = ["health_router", "reports_router", "documents_router"]
