"""Pydantic schemas for the scheduled-publish cron endpoint."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from postrelay.schemas.posts import PostOutcomeResponse


class SweepResponse(BaseModel):
    sweep_id: str
    status: str
    results: List[PostOutcomeResponse] = Field(default_factory=list)
    logs: List[str] = Field(default_factory=list)
    error: Optional[str] = None
