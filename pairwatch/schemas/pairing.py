from datetime import datetime

from pydantic import BaseModel

from pairwatch.models.pairing_request import PairingStatus
from pairwatch.models.watchlist_entry import MediaType, WatchStatus


class PairingRequestCreate(BaseModel):
    recipient_id: int


class PairingStatusUpdate(BaseModel):
    # Kept as a plain string so unknown values reach the state machine and
    # come back as an invalid transition rather than a validation error.
    status: str


class PairingUserRead(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class PairingRequestRead(BaseModel):
    id: str
    requester_id: int
    recipient_id: int
    status: PairingStatus
    partner: PairingUserRead
    created_at: datetime
    updated_at: datetime
    decided_at: datetime | None


class SharedContentRead(BaseModel):
    content_id: int
    media_type: MediaType
    status_a: WatchStatus
    status_b: WatchStatus

    model_config = {"from_attributes": True}


class SharedWatchlistRead(BaseModel):
    pairing_id: str
    user_a_id: int
    user_b_id: int
    items: list[SharedContentRead]
