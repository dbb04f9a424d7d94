from pairwatch.models.user import User
from pairwatch.models.pairing_request import PairingRequest, PairingStatus
from pairwatch.models.watchlist_entry import MediaType, WatchlistEntry, WatchStatus

__all__ = [
    "User",
    "PairingRequest",
    "PairingStatus",
    "WatchlistEntry",
    "MediaType",
    "WatchStatus",
]
