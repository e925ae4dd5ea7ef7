"""API Pydantic models."""

from .responses import (
    DocumentSummary,
    ErrorCodes,
    ErrorResponse,
    GenerateRequest,
    GenerationResponse,
    HealthResponse,
    MenuModel,
    OpenEventResponse,
    WindowModel,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "GenerateRequest",
    "GenerationResponse",
    "DocumentSummary",
    "MenuModel",
    "OpenEventResponse",
    "WindowModel",
]
