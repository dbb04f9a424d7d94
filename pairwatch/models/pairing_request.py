import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from pairwatch.database import Base


class PairingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Every legal move. Terminal states have no outgoing edges and nothing leads
# back to PENDING.
ALLOWED_TRANSITIONS: dict[PairingStatus, frozenset[PairingStatus]] = {
    PairingStatus.PENDING: frozenset(
        {PairingStatus.ACCEPTED, PairingStatus.REJECTED}
    ),
    PairingStatus.ACCEPTED: frozenset(),
    PairingStatus.REJECTED: frozenset(),
}


def pair_key(user_a: int, user_b: int) -> str:
    """Order-independent key for the unordered pair {user_a, user_b}."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


class PairingRequest(Base):
    __tablename__ = "pairing_requests"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    status: Mapped[PairingStatus] = mapped_column(
        Enum(
            PairingStatus,
            name="pairing_status",
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
            validate_strings=True,
        ),
        default=PairingStatus.PENDING,
        index=True,
    )
    # Only set while pending; a second pending row for the same pair fails
    # to insert.
    pending_pair_key: Mapped[str | None] = mapped_column(
        String(64), unique=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    decided_at: Mapped[datetime | None] = mapped_column(default=None)

    def involves(self, user_id: int) -> bool:
        return user_id in (self.requester_id, self.recipient_id)

    def partner_of(self, user_id: int) -> int:
        return self.recipient_id if self.requester_id == user_id else self.requester_id
