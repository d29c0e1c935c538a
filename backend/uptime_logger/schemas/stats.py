from __future__ import annotations

from pydantic import BaseModel, Field


class StatsResponse(BaseModel):
    total_online_ms: int = Field(ge=0)
    total_online_hms: str
    total_offline_ms: int = Field(ge=0)
    total_offline_hms: str
    last_status: bool | None = None
    last_timestamp: str | None = None
