"""Pydantic models for show filtering and search."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ShowFilters(BaseModel):
    channel: Optional[str] = None
    broadcast_style: Optional[str] = None
    language: Optional[str] = None
    preset_name: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    has_audio: Optional[bool] = None


class ShowSearchParams(ShowFilters):
    query: Optional[str] = Field(default=None, description="Case-insensitive match over title + preview")
    limit: Optional[int] = Field(default=None, gt=0)
    offset: Optional[int] = Field(default=None, ge=0)
    sort_by: Literal["created_at", "title", "estimated_duration_minutes"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    def filters(self) -> ShowFilters:
        return ShowFilters(**self.model_dump(include=set(ShowFilters.model_fields)))
