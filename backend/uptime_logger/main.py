import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError

from uptime_logger.api.readings import router as readings_router
from uptime_logger.api.stats import router as stats_router
from uptime_logger.core.config import Settings, get_settings
from uptime_logger.core.logging import configure_logging
from uptime_logger.repositories.jsonl_log import JsonlLog
from uptime_logger.services.aggregator import AvailabilityAggregator
from uptime_logger.services.retention import RetentionService
from uptime_logger.services.serial_ingest import SerialIngestService

logger = logging.getLogger("uptime_logger.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    configure_logging(settings.log_level)
    readings_log = JsonlLog(settings.readings_log_path)
    segments_log = JsonlLog(settings.segments_log_path)
    aggregator = AvailabilityAggregator(readings_log=readings_log, segments_log=segments_log)
    retention_service = RetentionService(
        settings=settings,
        aggregator=aggregator,
        readings_log=readings_log,
        segments_log=segments_log,
    )
    serial_ingest_service = SerialIngestService(settings=settings, aggregator=aggregator)

    app.state.settings = settings
    app.state.aggregator = aggregator
    app.state.retention_service = retention_service
    app.state.serial_ingest_service = serial_ingest_service

    logger.info("log retention set to %s day(s)", settings.retention_days)
    try:
        retention_service.prune_once()
    except Exception:
        logger.exception("startup retention pass failed")
    try:
        aggregator.load_from_log()
    except Exception:
        logger.exception("startup stats load failed")

    retention_service.start()
    serial_ingest_service.start()
    try:
        yield
    finally:
        serial_ingest_service.stop()
        retention_service.stop()


app = FastAPI(title="Power Uptime Logger", lifespan=lifespan)
app.include_router(readings_router)
app.include_router(stats_router)


@app.exception_handler(RequestValidationError)
async def log_rejected_payload(request: Request, exc: RequestValidationError):
    logger.warning("rejected malformed request path=%s errors=%s", request.url.path, exc.errors())
    return await request_validation_exception_handler(request, exc)


@app.get("/health")
def health():
    return {"status": "ok", "service": "uptime-logger"}


@app.get("/status")
def status(request: Request):
    settings: Settings | None = getattr(request.app.state, "settings", None)
    retention_service: RetentionService | None = getattr(request.app.state, "retention_service", None)
    serial_ingest_service: SerialIngestService | None = getattr(
        request.app.state,
        "serial_ingest_service",
        None,
    )

    if retention_service is None:
        retention_status = {"running": False, "last_error": "Retention service not initialized"}
    else:
        retention_status = retention_service.get_status_snapshot()

    if serial_ingest_service is None:
        serial_status = {"running": False, "last_error": "Serial ingest service not initialized"}
    else:
        serial_status = serial_ingest_service.get_status_snapshot()

    return {
        "status": "working",
        "service": "uptime-logger",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "retention": retention_status,
        "serial": serial_status,
        "config": {
            "retention_days": settings.retention_days if settings else None,
            "prune_interval_seconds": settings.prune_interval_seconds if settings else None,
            "readings_log_path": settings.readings_log_path if settings else None,
            "segments_log_path": settings.segments_log_path if settings else None,
            "serial_enabled": settings.serial_enabled if settings else None,
        },
    }


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
