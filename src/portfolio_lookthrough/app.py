"""FastAPI application exposing statement parsing as a JSON API."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile, status
from pydantic import BaseModel

from .enrichment import EnrichmentOrchestrator
from .logging_utils import configure_logging
from .parsing import ExtractionError, extract_text
from .pipeline import (
    NoPositionsFoundError,
    close_default_orchestrator,
    get_default_orchestrator,
    parse_portfolio,
)

configure_logging()

LOGGER = logging.getLogger(__name__)


class StatementText(BaseModel):
    text: str


app = FastAPI(title="Portfolio Look-through")


def get_orchestrator() -> EnrichmentOrchestrator:
    return get_default_orchestrator()


async def _parse(text: str, orchestrator: EnrichmentOrchestrator) -> dict[str, Any]:
    try:
        result = await parse_portfolio(text, orchestrator=orchestrator)
    except NoPositionsFoundError as exc:
        LOGGER.warning("Rejected statement: %s", exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return result.to_dict()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    close_default_orchestrator()
    LOGGER.info("Market-data session closed")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/cache")
async def cache_info(
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return orchestrator.cache_info()


@app.delete("/cache")
async def clear_cache(
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    orchestrator.clear_caches()
    return orchestrator.cache_info()


@app.post("/portfolio")
async def parse_statement(
    payload: StatementText,
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    LOGGER.debug("Parsing pasted statement (%d chars)", len(payload.text))
    return await _parse(payload.text, orchestrator)


@app.post("/portfolio/upload")
async def upload_statement(
    file: UploadFile = File(...),
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    data = await file.read()
    LOGGER.debug("Parsing uploaded statement %s (%d bytes)", file.filename, len(data))
    try:
        text = extract_text(data, filename=file.filename)
    except ExtractionError as exc:
        LOGGER.warning("Could not extract %s: %s", file.filename, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return await _parse(text, orchestrator)


__all__ = ["app"]
