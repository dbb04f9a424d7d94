"""Domain errors raised by the pairing core.

Each error carries the HTTP status the web layer answers with, so routers
never translate them one by one.
"""

from fastapi import status


class PairingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Pairing operation failed."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AlreadyPaired(PairingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "One of the users already has an accepted pairing."


class DuplicateRequest(PairingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A pending pairing request already exists between these users."


class RequestNotFound(PairingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Pairing request not found."


class UserNotFound(PairingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "User not found."


class SelfPairingRequest(PairingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Cannot pair with yourself."


class Unauthorized(PairingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the recipient can accept or reject a pairing request."


class InvalidStatusTransition(PairingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invalid status transition."


class StoreUnavailable(PairingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The pairing store is unavailable."
