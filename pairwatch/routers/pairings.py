from fastapi import APIRouter, HTTPException, status

from pairwatch.dependencies import (
    Correlator,
    CurrentUser,
    DbSession,
    RequestManager,
    StateMachine,
)
from pairwatch.models.pairing_request import PairingRequest, PairingStatus
from pairwatch.models.user import User
from pairwatch.schemas.pairing import (
    PairingRequestCreate,
    PairingRequestRead,
    PairingStatusUpdate,
    SharedWatchlistRead,
)

router = APIRouter(prefix="/pairings", tags=["pairings"])


def _build_response(request: PairingRequest, current_user: User, db) -> dict:
    """Build a PairingRequestRead-compatible dict with the partner's info.

    Parameters:
        request: The pairing request record.
        current_user: The authenticated user.
        db: Database session.

    Returns:
        Dict matching PairingRequestRead schema.
    """
    partner: User | None = db.get(User, request.partner_of(current_user.id))
    return {
        "id": request.id,
        "requester_id": request.requester_id,
        "recipient_id": request.recipient_id,
        "status": request.status,
        "partner": {
            "id": partner.id,
            "name": partner.name,
            "email": partner.email,
        },
        "created_at": request.created_at,
        "updated_at": request.updated_at,
        "decided_at": request.decided_at,
    }


@router.post("", response_model=PairingRequestRead, status_code=status.HTTP_201_CREATED)
def create_pairing_request(
    body: PairingRequestCreate,
    user: CurrentUser,
    db: DbSession,
    manager: RequestManager,
) -> dict:
    """Send a pairing request to another user.

    Raises:
        PairingError: 400 for yourself, 404 for unknown users, 409 if either
            user is already paired or a request is already pending.
    """
    request = manager.create(user.id, body.recipient_id)
    return _build_response(request, user, db)


@router.get("", response_model=list[PairingRequestRead])
def list_pairing_requests(
    user: CurrentUser, db: DbSession, manager: RequestManager
) -> list[dict]:
    return [_build_response(r, user, db) for r in manager.list(user.id)]


@router.get("/current", response_model=PairingRequestRead | None)
def get_current_pairing(
    user: CurrentUser, db: DbSession, manager: RequestManager
) -> dict | None:
    """Return the accepted pairing of the current user, or null."""
    request = manager.current_pairing(user.id)
    if request is None:
        return None
    return _build_response(request, user, db)


@router.post("/{request_id}/status", response_model=PairingRequestRead)
def update_pairing_status(
    request_id: str,
    body: PairingStatusUpdate,
    user: CurrentUser,
    db: DbSession,
    machine: StateMachine,
) -> dict:
    """Accept or reject a pending request as its recipient.

    Raises:
        PairingError: 404 if not found, 403 if not the recipient, 409 if the
            request was already decided, the status is invalid, or accepting
            would break exclusivity.
    """
    request = machine.transition(request_id, user.id, body.status)
    return _build_response(request, user, db)


@router.get("/{request_id}/shared-watchlist", response_model=SharedWatchlistRead)
def get_shared_watchlist(
    request_id: str,
    user: CurrentUser,
    db: DbSession,
    correlator: Correlator,
) -> dict:
    """List the content both partners of an accepted pairing track.

    Raises:
        HTTPException: 404 if not found, 403 if not a participant, 409 if the
            pairing is not accepted.
    """
    request: PairingRequest | None = db.get(PairingRequest, request_id)
    if request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if not request.involves(user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    if request.status != PairingStatus.ACCEPTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Shared watchlists are only available for accepted pairings.",
        )

    partner_id = request.partner_of(user.id)
    return {
        "pairing_id": request.id,
        "user_a_id": user.id,
        "user_b_id": partner_id,
        "items": correlator.correlate_users(db, user.id, partner_id),
    }
