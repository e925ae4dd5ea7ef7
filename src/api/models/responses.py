"""Pydantic request and response models for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, model_validator


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    output_dir_writable: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class GenerateRequest(BaseModel):
    """Optional explicit window; both bounds or neither."""

    start: datetime | None = None
    end: datetime | None = None

    @model_validator(mode="after")
    def _check_bounds(self):
        if (self.start is None) != (self.end is None):
            raise ValueError("start and end must be given together")
        if self.start is not None and not self.start < self.end:
            raise ValueError("start must be before end")
        return self


class WindowModel(BaseModel):
    start: datetime
    end: datetime


class GenerationResponse(BaseModel):
    """Result of a generation or regeneration run."""

    document_id: str
    document_name: str
    path: str
    window: WindowModel
    sheets: list[str]
    total_events: int
    generated_at: datetime
    exact_window: bool | None = None  # set for regenerations


class DocumentSummary(BaseModel):
    document_id: str
    document_name: str
    window: WindowModel | None = None
    has_trigger: bool


class MenuModel(BaseModel):
    """Action offered when a document is opened."""

    title: str
    item: str
    regenerate_url: str
    window: WindowModel | None = None


class OpenEventResponse(BaseModel):
    document_id: str
    triggers_fired: int
    menus: list[MenuModel]


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    CALENDAR_ERROR = "CALENDAR_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
