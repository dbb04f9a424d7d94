from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from pairwatch.dependencies import CurrentUser, DbSession
from pairwatch.models.watchlist_entry import WatchlistEntry
from pairwatch.schemas.watchlist import (
    WatchlistEntryCreate,
    WatchlistEntryRead,
    WatchlistEntryUpdate,
)

router = APIRouter(prefix="/watchlist", tags=["watchlist"])


@router.get("", response_model=list[WatchlistEntryRead])
def list_entries(user: CurrentUser, db: DbSession):
    entries = db.execute(
        select(WatchlistEntry)
        .where(WatchlistEntry.user_id == user.id)
        .order_by(WatchlistEntry.id)
    ).scalars().all()
    return entries


@router.post("", response_model=WatchlistEntryRead, status_code=status.HTTP_201_CREATED)
def add_entry(body: WatchlistEntryCreate, user: CurrentUser, db: DbSession):
    existing = db.execute(
        select(WatchlistEntry).where(
            WatchlistEntry.user_id == user.id,
            WatchlistEntry.content_id == body.content_id,
        )
    ).scalars().first()
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Content is already on your watchlist.",
        )

    entry = WatchlistEntry(user_id=user.id, **body.model_dump())
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.patch("/{entry_id}", response_model=WatchlistEntryRead)
def update_entry(
    entry_id: int, updates: WatchlistEntryUpdate, user: CurrentUser, db: DbSession
):
    entry = db.get(WatchlistEntry, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if entry.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)

    for field, value in updates.model_dump(exclude_unset=True).items():
        if field == "status" and value is None:
            continue
        setattr(entry, field, value)

    db.commit()
    db.refresh(entry)
    return entry
