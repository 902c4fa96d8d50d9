"""
Northdata Scraper - FastAPI Application.

Maps HTTP requests onto the scrape operations. Every operation category has
its own sequential queue, so at most one browser operation per category runs
at a time.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from northdata_scraper.api.schemas import (
    ErrorResponse,
    HealthResponse,
    NetworkGraphicResponse,
    PageContentResponse,
    SearchRequest,
    SearchResponse,
)
from northdata_scraper.crawler.scraper import NorthDataScraper
from northdata_scraper.errors import ScraperError, ScraperErrorCode
from northdata_scraper.scheduler.task_queue import ScrapeQueues, SequentialTaskQueue
from northdata_scraper.utils.config import Settings, get_settings
from northdata_scraper.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


def _bad_request(message: str) -> JSONResponse:
    body = ErrorResponse(error=f"Invalid request: {message}")
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


def _operation_failed(category: str, error: Exception) -> JSONResponse:
    code = error.code if isinstance(error, ScraperError) else ScraperErrorCode.INTERNAL_ERROR
    logger.error(
        f"{category} request failed",
        error=str(error),
        error_type=type(error).__name__,
        code=code.value,
    )
    body = ErrorResponse(
        error=f"{category} request failed",
        message=str(error),
        code=code.value,
    )
    return JSONResponse(status_code=500, content=body.model_dump())


def create_app(
    scraper: NorthDataScraper | None = None,
    queues: ScrapeQueues | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        scraper: Scraper instance. Created from settings if None.
        queues: Per-category queues. Fresh queues if None.
        settings: Application settings. Uses get_settings() if None.

    Returns:
        FastAPI application whose lifespan initializes and closes the scraper.
    """
    settings = settings or get_settings()
    scraper = scraper or NorthDataScraper(settings)
    queues = queues or ScrapeQueues()
    origin_prefix = settings.site.origin_prefix

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Application lifespan handler."""
        logger.info("Northdata scraper starting up")
        await scraper.initialize()
        yield
        logger.info("Northdata scraper shutting down")
        await scraper.close()

    app = FastAPI(
        title="Northdata Scraper",
        description="Search, suggestions, page content and network graphics from northdata.de",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.scraper = scraper
    app.state.queues = queues

    async def run_queued(
        queue: SequentialTaskQueue,
        operation: str,
        thunk: Callable[[], Awaitable[Any]],
        **log_context: Any,
    ) -> Any:
        with LogContext(operation=operation, request_id=uuid.uuid4().hex[:12]):
            logger.info("Request received", queue_size=queue.size, **log_context)
            return await queue.enqueue(thunk)

    # =========================================================================
    # Errors
    # =========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            return _bad_request(f"{location or 'body'}: {errors[0].get('msg', 'invalid')}")
        return _bad_request("malformed request")

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        logger.debug("health_check", **queues.get_stats())
        return HealthResponse(
            status="ok",
            search_queue_size=queues.search.size,
            suggestions_queue_size=queues.suggestions.size,
            page_content_queue_size=queues.page_content.size,
            network_graphic_queue_size=queues.network_graphic.size,
            search_queue_processing=queues.search.is_processing,
            suggestions_queue_processing=queues.suggestions.is_processing,
            page_content_queue_processing=queues.page_content.is_processing,
            network_graphic_queue_processing=queues.network_graphic.is_processing,
        )

    # =========================================================================
    # Operations
    # =========================================================================

    @app.post("/search", response_model=SearchResponse)
    async def search(request: SearchRequest) -> SearchResponse | JSONResponse:
        """Search for a company.

        Args:
            request: SearchRequest with the query text.

        Returns:
            SearchResponse with the results container markup.
        """
        query = request.query
        try:
            result = await run_queued(
                queues.search, "search", lambda: scraper.search(query), query=query
            )
        except Exception as e:
            return _operation_failed("Search", e)
        return SearchResponse(query=query, url=result.url, html=result.html)

    @app.get("/suggest")
    async def suggest(query: str | None = None) -> JSONResponse:
        """Return the site's autocomplete JSON for a query, unchanged."""
        if not query:
            return _bad_request("query parameter is required and must be a string")
        try:
            result = await run_queued(
                queues.suggestions,
                "suggestions",
                lambda: scraper.get_suggestions(query),
                query=query,
            )
        except Exception as e:
            return _operation_failed("Suggestions", e)
        return JSONResponse(status_code=200, content=result.json)

    @app.get("/page", response_model=PageContentResponse)
    async def page_content(url: str | None = None) -> PageContentResponse | JSONResponse:
        """Return the sanitized main section of a company page."""
        if not url:
            return _bad_request("url parameter is required and must be a string")
        if not url.startswith(origin_prefix):
            return _bad_request(f"URL must start with {origin_prefix}")
        try:
            result = await run_queued(
                queues.page_content,
                "page_content",
                lambda: scraper.get_page_content(url),
                url=url,
            )
        except Exception as e:
            return _operation_failed("Page content", e)
        return PageContentResponse(url=result.url, html=result.html)

    @app.get("/network-svg", response_model=NetworkGraphicResponse)
    async def network_svg(url: str | None = None) -> NetworkGraphicResponse | JSONResponse:
        """Return the company network graphic as standalone SVG."""
        if not url:
            return _bad_request("url parameter is required and must be a string")
        if not url.startswith(origin_prefix):
            return _bad_request(f"URL must start with {origin_prefix}")
        try:
            result = await run_queued(
                queues.network_graphic,
                "network_graphic",
                lambda: scraper.get_network_svg(url),
                url=url,
            )
        except Exception as e:
            return _operation_failed("Network graphic", e)
        return NetworkGraphicResponse(url=result.url, svg=result.svg)

    return app
