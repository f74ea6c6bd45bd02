"""
Currency Annotator - sidecar that annotates page text with converted prices
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Dict, List, Optional

from fastapi import FastAPI, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from . import __version__
from .annotation.engine import ConversionEngine
from .config import settings
from .conversion.models import CUSTOM_FEE, SettingsUpdate
from .conversion.rate_fetcher import RateFetcher
from .dependencies import get_engine, get_health_checker, get_logger, get_rate_fetcher
from .detection.registry import load_from_files
from .exceptions import DataLoadError, EngineUnavailableError
from .health import HealthChecker
from .logger import setup_logging


class Fragment(BaseModel):
    id: str
    text: str


class AnnotateRequest(BaseModel):
    fragments: List[Fragment]


class AnnotatedFragment(BaseModel):
    id: str
    text: str
    changed: bool


class AnnotateResponse(BaseModel):
    fragments: List[AnnotatedFragment]


class RestoreRequest(BaseModel):
    ids: List[str]


class RestoreResponse(BaseModel):
    restored: Dict[str, Optional[str]]


async def refresh_rates(engine: ConversionEngine, fetcher: RateFetcher) -> bool:
    """Fetch rates once and swap them into the engine"""
    return engine.update_rates(await fetcher.refresh())


async def refresh_rates_periodically(engine: ConversionEngine, fetcher: RateFetcher, interval_seconds: float):
    """Background loop refreshing the rate table"""
    logger = logging.getLogger(__name__)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await refresh_rates(engine, fetcher)
        except Exception as e:
            logger.error(f"Periodic rate refresh failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    # Startup
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting Currency Annotator service", extra={
        "version": __version__,
        "host": settings.host,
        "port": settings.port
    })

    engine = get_engine()
    fetcher = get_rate_fetcher()
    await refresh_rates(engine, fetcher)

    refresh_task = asyncio.create_task(refresh_rates_periodically(
        engine, fetcher, settings.rates_refresh_interval_minutes * 60
    ))

    yield

    # Shutdown
    refresh_task.cancel()
    with suppress(asyncio.CancelledError):
        await refresh_task
    logger.info("Shutting down Currency Annotator service")


app = FastAPI(
    title="Currency Annotator",
    version=__version__,
    description="Detects prices in page text and annotates them with converted amounts",
    debug=settings.debug,
    lifespan=lifespan
)


@app.get("/healthz")
async def health_check(health_checker: HealthChecker = Depends(get_health_checker)):
    """Health check endpoint - returns 200 if service is alive"""
    try:
        health_status = await health_checker.check_health()
        return JSONResponse(
            status_code=200 if health_status["healthy"] else 503,
            content=health_status
        )
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"healthy": False, "error": str(e)}
        )


@app.get("/readyz")
async def readiness_check(health_checker: HealthChecker = Depends(get_health_checker)):
    """Readiness check endpoint - returns 200 if service is ready to accept requests"""
    try:
        readiness_status = await health_checker.check_readiness()
        return JSONResponse(
            status_code=200 if readiness_status["ready"] else 503,
            content=readiness_status
        )
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "error": str(e)}
        )


@app.post("/annotate", response_model=AnnotateResponse)
async def annotate_fragments(
    request: AnnotateRequest,
    engine: ConversionEngine = Depends(get_engine),
    logger = Depends(get_logger)
):
    """Annotate the supplied fragments with converted amounts"""
    try:
        results = engine.scan((fragment.id, fragment.text) for fragment in request.fragments)
    except EngineUnavailableError as e:
        logger.warning(f"Annotation refused: {e}")
        raise HTTPException(status_code=503, detail="Currency registry unavailable")

    return AnnotateResponse(fragments=[
        AnnotatedFragment(id=result.fragment_id, text=result.text, changed=result.changed)
        for result in results
    ])


@app.post("/restore", response_model=RestoreResponse)
async def restore_fragments(
    request: RestoreRequest,
    engine: ConversionEngine = Depends(get_engine)
):
    """Original text of the given fragments; null for fragments that were not annotated"""
    return RestoreResponse(restored={
        fragment_id: engine.restore(fragment_id) for fragment_id in request.ids
    })


@app.post("/restore-all", response_model=RestoreResponse)
async def restore_all_fragments(engine: ConversionEngine = Depends(get_engine)):
    """Original text of every annotated fragment"""
    return RestoreResponse(restored=engine.restore_all())


@app.get("/settings")
async def get_settings(engine: ConversionEngine = Depends(get_engine)):
    """Current conversion settings"""
    return engine.config.to_settings()


@app.put("/settings")
async def update_settings(
    update: SettingsUpdate,
    engine: ConversionEngine = Depends(get_engine)
):
    """Replace the conversion settings; returns the fragments restored by the change"""
    restored = engine.apply_settings(update)
    return {
        "settings": engine.config.to_settings(),
        "restored": restored
    }


@app.get("/rates")
async def get_rates(
    engine: ConversionEngine = Depends(get_engine),
    fetcher: RateFetcher = Depends(get_rate_fetcher)
):
    """Summary of the current exchange-rate table"""
    rates = engine.rates
    if rates is None:
        return {"available": False, "last_error": fetcher.last_error}

    return {
        "available": True,
        "base": rates.base,
        "fetched_at": rates.fetched_at,
        "rate_count": len(rates.rates),
        "last_error": fetcher.last_error
    }


@app.post("/rates/refresh")
async def refresh_rates_now(
    engine: ConversionEngine = Depends(get_engine),
    fetcher: RateFetcher = Depends(get_rate_fetcher)
):
    """Fetch exchange rates now; the previous table is kept on failure"""
    updated = await refresh_rates(engine, fetcher)
    rates = engine.rates
    return {
        "updated": updated,
        "fetched_at": rates.fetched_at if rates else None,
        "last_error": fetcher.last_error
    }


@app.post("/registry/reload")
async def reload_registry(
    engine: ConversionEngine = Depends(get_engine),
    logger = Depends(get_logger)
):
    """Reload the currency registry from its source files"""
    try:
        registry = load_from_files(
            settings.symbols_path,
            settings.card_fees_path,
            pivot_code=settings.pivot_currency,
            pivot_symbol=settings.pivot_symbol
        )
    except DataLoadError as e:
        logger.error(f"Registry reload failed: {e}")
        raise HTTPException(status_code=503, detail=f"Registry reload failed: {e}")

    restored = engine.update_registry(registry)
    return {"symbols": len(registry.symbols), "restored": restored}


@app.get("/issuers")
async def list_issuers(engine: ConversionEngine = Depends(get_engine)):
    """Card issuers with their fee percent, user presets and the custom option"""
    if engine.inert:
        raise HTTPException(status_code=503, detail="Currency registry unavailable")

    registry = engine.context.registry
    return {
        "issuers": registry.fees,
        "presets": registry.presets,
        "custom": CUSTOM_FEE
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors"""
    logger = logging.getLogger(__name__)
    logger.error(f"Unhandled exception: {exc}", extra={
        "path": request.url.path,
        "method": request.method,
        "error_type": type(exc).__name__
    })

    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


def main():
    """Main entry point"""
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
