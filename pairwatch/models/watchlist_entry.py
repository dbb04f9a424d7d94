import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pairwatch.database import Base


class MediaType(str, enum.Enum):
    MOVIE = "movie"
    TV = "tv"


class WatchStatus(str, enum.Enum):
    TO_WATCH = "to_watch"
    WATCHING = "watching"
    FINISHED = "finished"


def _values(members):
    return [m.value for m in members]


class WatchlistEntry(Base):
    __tablename__ = "watchlist_entries"
    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 10)",
            name="ck_watchlist_entries_rating_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    content_id: Mapped[int] = mapped_column(Integer, index=True)
    media_type: Mapped[MediaType] = mapped_column(
        Enum(
            MediaType,
            name="media_type",
            native_enum=False,
            length=10,
            values_callable=_values,
        )
    )
    status: Mapped[WatchStatus] = mapped_column(
        Enum(
            WatchStatus,
            name="watch_status",
            native_enum=False,
            length=20,
            values_callable=_values,
        ),
        default=WatchStatus.TO_WATCH,
    )
    rating: Mapped[int | None] = mapped_column(default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
