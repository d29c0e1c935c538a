from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class ReadingSavedResponse(BaseModel):
    status: Literal["ok"] = "ok"
    saved: dict[str, Any]
