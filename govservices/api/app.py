"""FastAPI application for the GovServices search service."""

from __future__ import annotations

import logging
import time
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from govservices.config import GovServicesSettings, get_settings
from govservices.errors import (
    DuplicateRecordError,
    FetchError,
    PolicyDeniedError,
    ProviderError,
    RateLimitedError,
    RecordNotFoundError,
)
from govservices.indexer.models import SearchOptions
from govservices.orchestrator import BatchItem, SearchOrchestrator, build_orchestrator
from govservices.providers import ProviderChain, build_providers

logger = logging.getLogger(__name__)


class ScrapeRequest(BaseModel):
    url: str
    dynamic: bool = False


class BatchRequest(BaseModel):
    urls: List[str] = Field(min_length=1)
    dynamic: bool = False
    concurrency: Optional[int] = Field(default=None, ge=1)
    timeout: Optional[float] = Field(default=None, gt=0)


class RespondRequest(BaseModel):
    query: str = Field(min_length=1)
    language: Literal["en", "ar"] = "en"


def create_app(
    orchestrator: Optional[SearchOrchestrator] = None,
    settings: Optional[GovServicesSettings] = None,
) -> FastAPI:
    """Build the API; the orchestrator is created once at startup unless injected."""
    app = FastAPI(title="GovServices API", version="1.0.0")
    app.state.settings = settings or (orchestrator.settings if orchestrator else None)
    app.state.orchestrator = orchestrator

    @app.on_event("startup")
    async def startup_event() -> None:
        if app.state.orchestrator is None:
            app.state.settings = app.state.settings or get_settings()
            app.state.orchestrator = build_orchestrator(app.state.settings)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        current: Optional[SearchOrchestrator] = app.state.orchestrator
        if current:
            await current.aclose()

    _register_error_handlers(app)

    @app.get("/healthz")
    async def healthz(request: Request) -> JSONResponse:
        payload = {"status": "ok"}
        payload.update(_orchestrator(request).stats())
        return JSONResponse(payload)

    @app.get("/search")
    async def search(
        request: Request,
        q: str = Query(default="", description="Free-text service query"),
        language: Optional[Literal["en", "ar"]] = Query(default=None),
        category: Optional[str] = Query(default=None),
        max_results: int = Query(default=10, ge=0, le=100),
        include_expired: bool = Query(default=False),
        sort_by: Literal["relevance", "date", "authority"] = Query(default="relevance"),
    ) -> JSONResponse:
        options = SearchOptions(
            language=language,
            category=category,
            max_results=max_results,
            include_expired=include_expired,
            sort_by=sort_by,
        )

        start = time.perf_counter()
        results = await _orchestrator(request).search(q.strip(), options)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        return JSONResponse(
            {
                "query": q.strip(),
                "total": len(results),
                "results": [result.to_dict() for result in results],
                "duration_ms": duration_ms,
            }
        )

    @app.post("/scrape")
    async def scrape(request: Request, body: ScrapeRequest) -> JSONResponse:
        record = await _orchestrator(request).scrape_and_index(body.url, body.dynamic)
        return JSONResponse(record.to_dict())

    @app.post("/batch")
    async def batch(request: Request, body: BatchRequest) -> JSONResponse:
        items = [BatchItem(url=url, dynamic=body.dynamic) for url in body.urls]
        records = await _orchestrator(request).process_batch(
            items, concurrency=body.concurrency, timeout=body.timeout
        )
        return JSONResponse(
            {
                "requested": len(items),
                "indexed": len(records),
                "services": [record.to_dict() for record in records],
            }
        )

    @app.delete("/cache")
    async def clear_cache(
        request: Request, prefix: Optional[str] = Query(default=None)
    ) -> JSONResponse:
        removed = _orchestrator(request).clear_cache(prefix)
        return JSONResponse({"removed": removed, "prefix": prefix})

    @app.post("/respond")
    async def respond(request: Request, body: RespondRequest) -> JSONResponse:
        current = _orchestrator(request)
        chain = ProviderChain(build_providers(current.settings.response_providers, current))
        response = await chain.respond(body.query, body.language)
        return JSONResponse(response.to_dict())

    @app.get("/services/{service_id}")
    async def get_service(request: Request, service_id: str) -> JSONResponse:
        record = _orchestrator(request).engine.get_record(service_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Service {service_id!r} not found")
        return JSONResponse(record.to_dict())

    return app


def _orchestrator(request: Request) -> SearchOrchestrator:
    orchestrator: Optional[SearchOrchestrator] = getattr(
        request.app.state, "orchestrator", None
    )
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Orchestrator not initialized")
    return orchestrator


def _register_error_handlers(app: FastAPI) -> None:
    def handler(status_code: int):
        async def _handle(request: Request, exc: Exception) -> JSONResponse:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse({"detail": str(exc)}, status_code=status_code)

        return _handle

    app.add_exception_handler(PolicyDeniedError, handler(403))
    app.add_exception_handler(RateLimitedError, handler(429))
    app.add_exception_handler(FetchError, handler(502))
    app.add_exception_handler(RecordNotFoundError, handler(404))
    app.add_exception_handler(DuplicateRecordError, handler(409))
    app.add_exception_handler(ProviderError, handler(503))
