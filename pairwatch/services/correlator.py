"""Shared-watchlist computation for two users.

The correlator reads entry snapshots and never writes them. Content identity
is the content id alone; when a user tracks the same id more than once, the
most recently updated entry is the one that counts.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from pairwatch.models.watchlist_entry import MediaType, WatchlistEntry, WatchStatus


@dataclass(frozen=True)
class SharedContent:
    content_id: int
    media_type: MediaType
    status_a: WatchStatus
    status_b: WatchStatus


def _recency(entry: WatchlistEntry) -> tuple[datetime, int]:
    return (entry.updated_at or datetime.min, entry.id or 0)


def index_by_content(entries: Iterable[WatchlistEntry]) -> dict[int, WatchlistEntry]:
    """Map content id to its winning entry, keeping first-seen id order."""
    index: dict[int, WatchlistEntry] = {}
    for entry in entries:
        current = index.get(entry.content_id)
        if current is None or _recency(entry) > _recency(current):
            index[entry.content_id] = entry
    return index


class WatchlistCorrelator:
    def correlate(
        self,
        entries_a: Iterable[WatchlistEntry],
        entries_b: Iterable[WatchlistEntry],
    ) -> list[SharedContent]:
        """Return the content both users track with each side's status.

        Results follow the order in which content ids first appear in
        ``entries_b``, so identical inputs always give identical output.
        """
        index_a = index_by_content(entries_a)
        shared: list[SharedContent] = []
        for content_id, entry_b in index_by_content(entries_b).items():
            entry_a = index_a.get(content_id)
            if entry_a is None:
                continue
            shared.append(
                SharedContent(
                    content_id=content_id,
                    media_type=entry_a.media_type,
                    status_a=entry_a.status,
                    status_b=entry_b.status,
                )
            )
        return shared

    def correlate_users(
        self, db: Session, user_a_id: int, user_b_id: int
    ) -> list[SharedContent]:
        """Load both users' entries from the store and correlate them."""
        return self.correlate(
            entries_for(db, user_a_id), entries_for(db, user_b_id)
        )


def entries_for(db: Session, user_id: int) -> Sequence[WatchlistEntry]:
    return db.execute(
        select(WatchlistEntry)
        .where(WatchlistEntry.user_id == user_id)
        .order_by(WatchlistEntry.id)
    ).scalars().all()


watchlist_correlator = WatchlistCorrelator()
