import logging
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pairwatch.errors import (
    AlreadyPaired,
    InvalidStatusTransition,
    RequestNotFound,
    StoreUnavailable,
    Unauthorized,
)
from pairwatch.models.pairing_request import (
    ALLOWED_TRANSITIONS,
    PairingRequest,
    PairingStatus,
)
from pairwatch.services.locks import UserLockRegistry, participants_locked, user_locks
from pairwatch.services.pairing_requests import find_accepted

logger = logging.getLogger(__name__)


def parse_status(value: PairingStatus | str) -> PairingStatus:
    """Coerce a raw status value, rejecting anything outside the enum."""
    try:
        return PairingStatus(value)
    except ValueError:
        raise InvalidStatusTransition(f"Unknown status {value!r}.") from None


class PairingStateMachine:
    """Moves pairing requests out of the pending state.

    ``transition`` is the only code path that writes ``status``. Acceptance
    re-checks exclusivity under the participants' locks because the world may
    have changed since the request was created.
    """

    def __init__(self, db: Session, locks: UserLockRegistry = user_locks) -> None:
        self.db = db
        self.locks = locks

    def _load(self, request_id: str, for_update: bool = False) -> PairingRequest:
        try:
            request: PairingRequest | None = self.db.get(
                PairingRequest,
                request_id,
                with_for_update=for_update,
                populate_existing=for_update,
            )
        except OperationalError as exc:
            raise StoreUnavailable() from exc
        if request is None:
            raise RequestNotFound()
        return request

    def transition(
        self,
        request_id: str,
        actor_id: int,
        new_status: PairingStatus | str,
    ) -> PairingRequest:
        """Accept or reject a pending request on behalf of its recipient.

        Parameters:
            request_id: The request to decide.
            actor_id: The authenticated user making the decision.
            new_status: ``accepted`` or ``rejected``.

        Returns:
            The committed request.

        Raises:
            RequestNotFound: if no request has this id.
            InvalidStatusTransition: if the request is no longer pending, or
                the target status is not a legal move from pending.
            Unauthorized: if the actor is not the recipient.
            AlreadyPaired: if accepting would give either participant a
                second accepted pairing. The request stays pending.
        """
        request = self._load(request_id)
        participants = (request.requester_id, request.recipient_id)

        with participants_locked(self.db, participants, self.locks):
            request = self._load(request_id, for_update=True)

            if request.status != PairingStatus.PENDING:
                raise InvalidStatusTransition(
                    f"Request is already {request.status.value}."
                )
            if actor_id != request.recipient_id:
                raise Unauthorized()

            target = parse_status(new_status)
            if target not in ALLOWED_TRANSITIONS[request.status]:
                raise InvalidStatusTransition(
                    f"Cannot move a request from {request.status.value} "
                    f"to {target.value}."
                )

            if target == PairingStatus.ACCEPTED:
                accepted = find_accepted(self.db, *participants, for_update=True)
                if accepted is not None:
                    raise AlreadyPaired()

            request.status = target
            request.pending_pair_key = None
            request.decided_at = datetime.now(timezone.utc)
            self.db.flush()
            self.db.commit()

        logger.info(
            "Pairing request %s %s by user %s", request.id, target.value, actor_id
        )
        return request
