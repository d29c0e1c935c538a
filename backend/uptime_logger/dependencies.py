from typing import TYPE_CHECKING

from fastapi import HTTPException, Request

if TYPE_CHECKING:
    from uptime_logger.services.aggregator import AvailabilityAggregator


def get_aggregator(request: Request) -> "AvailabilityAggregator":
    aggregator = getattr(request.app.state, "aggregator", None)
    if aggregator is None:
        raise HTTPException(status_code=503, detail="Availability aggregator is not initialized")
    return aggregator
