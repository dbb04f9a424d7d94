import logging
from collections.abc import Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pairwatch.errors import AlreadyPaired, DuplicateRequest, SelfPairingRequest
from pairwatch.models.pairing_request import PairingRequest, PairingStatus, pair_key
from pairwatch.services.locks import UserLockRegistry, participants_locked, user_locks

logger = logging.getLogger(__name__)


def involving(*user_ids: int):
    """Filter matching requests where any of the users takes part."""
    return or_(
        PairingRequest.requester_id.in_(user_ids),
        PairingRequest.recipient_id.in_(user_ids),
    )


def between(user_a: int, user_b: int):
    """Filter matching requests between two users, in either direction."""
    return or_(
        and_(
            PairingRequest.requester_id == user_a,
            PairingRequest.recipient_id == user_b,
        ),
        and_(
            PairingRequest.requester_id == user_b,
            PairingRequest.recipient_id == user_a,
        ),
    )


def find_accepted(
    db: Session, *user_ids: int, for_update: bool = False
) -> PairingRequest | None:
    """Return an accepted request involving any of the users, if one exists.

    Inside a check-then-write unit pass ``for_update=True``: a locking read
    sees the latest committed rows even under REPEATABLE READ snapshots.
    """
    stmt = (
        select(PairingRequest)
        .where(
            PairingRequest.status == PairingStatus.ACCEPTED,
            involving(*user_ids),
        )
        .limit(1)
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


class PairingRequestManager:
    """Creates and lists pairing requests."""

    def __init__(self, db: Session, locks: UserLockRegistry = user_locks) -> None:
        self.db = db
        self.locks = locks

    def create(self, requester_id: int, recipient_id: int) -> PairingRequest:
        """Send a pairing request from one user to another.

        Parameters:
            requester_id: The user proposing the pairing.
            recipient_id: The user who will accept or reject it.

        Returns:
            The committed request, in the pending state.

        Raises:
            SelfPairingRequest: if both ids are the same user.
            UserNotFound: if either user does not exist.
            AlreadyPaired: if either user already has an accepted pairing.
            DuplicateRequest: if a pending request between them already exists.
        """
        if requester_id == recipient_id:
            raise SelfPairingRequest()

        with participants_locked(self.db, (requester_id, recipient_id), self.locks):
            accepted = find_accepted(
                self.db, requester_id, recipient_id, for_update=True
            )
            if accepted is not None:
                raise AlreadyPaired()

            pending: PairingRequest | None = self.db.execute(
                select(PairingRequest)
                .where(
                    PairingRequest.status == PairingStatus.PENDING,
                    between(requester_id, recipient_id),
                )
                .limit(1)
                .with_for_update()
            ).scalar_one_or_none()
            if pending is not None:
                raise DuplicateRequest()

            request = PairingRequest(
                requester_id=requester_id,
                recipient_id=recipient_id,
                status=PairingStatus.PENDING,
                pending_pair_key=pair_key(requester_id, recipient_id),
            )
            self.db.add(request)
            try:
                self.db.flush()
            except IntegrityError as exc:
                # Another process won the race past the row locks.
                raise DuplicateRequest() from exc
            self.db.commit()

        logger.info(
            "Pairing request %s created: %s -> %s",
            request.id,
            requester_id,
            recipient_id,
        )
        return request

    def list(self, user_id: int) -> Sequence[PairingRequest]:
        """Return every request the user sent or received, oldest first."""
        return list(
            self.db.execute(
                select(PairingRequest)
                .where(involving(user_id))
                .order_by(PairingRequest.created_at, PairingRequest.id)
            ).scalars().all()
        )

    def current_pairing(self, user_id: int) -> PairingRequest | None:
        """Return the user's accepted pairing, or None when unpaired."""
        return find_accepted(self.db, user_id)
