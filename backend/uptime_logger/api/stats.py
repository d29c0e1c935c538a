from fastapi import APIRouter, Depends

from uptime_logger.dependencies import get_aggregator
from uptime_logger.schemas.stats import StatsResponse
from uptime_logger.services.aggregator import AvailabilityAggregator


router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
def get_stats(aggregator: AvailabilityAggregator = Depends(get_aggregator)) -> StatsResponse:
    return StatsResponse(**aggregator.stats_payload())
