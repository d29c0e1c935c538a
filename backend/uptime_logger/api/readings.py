from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse, PlainTextResponse

from uptime_logger.dependencies import get_aggregator
from uptime_logger.schemas.readings import ReadingSavedResponse
from uptime_logger.services.aggregator import AvailabilityAggregator


router = APIRouter(tags=["readings"])
logger = logging.getLogger("uptime_logger.api.readings")


class AsciiJSONResponse(JSONResponse):
    """JSON response with non-ASCII escaped, so stored readings echo back byte-safe."""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, separators=(",", ":"), ensure_ascii=True).encode("utf-8")


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Reading logger is running. POST JSON to /readings"


# Accepts JSON objects like {"id":1,"device":"press_machine","power":0}
@router.post(
    "/readings",
    response_model=ReadingSavedResponse,
    response_class=AsciiJSONResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_reading(
    payload: Any = Body(default=None),
    aggregator: AvailabilityAggregator = Depends(get_aggregator),
) -> AsciiJSONResponse:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        logger.warning("push reading is not a JSON object, rejected type=%s", type(payload).__name__)
        raise HTTPException(
            status_code=422,
            detail="Reading must be a JSON object",
        )

    try:
        stamped = aggregator.apply_reading(payload)
    except (OSError, ValueError) as exc:
        logger.exception("failed to log reading")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save reading",
        ) from exc
    # the echoed reading is arbitrary client JSON, so it bypasses model serialization
    return AsciiJSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"status": "ok", "saved": stamped},
    )
