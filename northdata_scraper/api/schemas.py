"""
Pydantic schemas for the scraper HTTP API.

Response bodies use camelCase keys for compatibility with existing clients.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# =============================================================================
# Health Check
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response with per-category queue state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = "ok"
    search_queue_size: int = 0
    suggestions_queue_size: int = 0
    page_content_queue_size: int = 0
    network_graphic_queue_size: int = 0
    search_queue_processing: bool = False
    suggestions_queue_processing: bool = False
    page_content_queue_processing: bool = False
    network_graphic_queue_processing: bool = False


# =============================================================================
# Search
# =============================================================================


class SearchRequest(BaseModel):
    """Company search request."""

    query: str = Field(..., min_length=1, description="Search text")


class SearchResponse(BaseModel):
    """Company search response."""

    query: str
    url: str
    html: str


# =============================================================================
# Page Content / Network Graphic
# =============================================================================


class PageContentResponse(BaseModel):
    """Sanitized main section of a company page."""

    url: str
    html: str


class NetworkGraphicResponse(BaseModel):
    """Standalone SVG of a company network graphic."""

    url: str
    svg: str


# =============================================================================
# Errors
# =============================================================================


class ErrorResponse(BaseModel):
    """Error body for 400 and 500 responses."""

    error: str
    message: str | None = None
    code: str | None = None
