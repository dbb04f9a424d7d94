from datetime import datetime

from pydantic import BaseModel, Field

from pairwatch.models.watchlist_entry import MediaType, WatchStatus


class WatchlistEntryCreate(BaseModel):
    content_id: int
    media_type: MediaType
    status: WatchStatus = WatchStatus.TO_WATCH
    rating: int | None = Field(default=None, ge=0, le=10)
    notes: str | None = None


class WatchlistEntryUpdate(BaseModel):
    status: WatchStatus | None = None
    rating: int | None = Field(default=None, ge=0, le=10)
    notes: str | None = None


class WatchlistEntryRead(BaseModel):
    id: int
    user_id: int
    content_id: int
    media_type: MediaType
    status: WatchStatus
    rating: int | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
