from datetime import datetime, timedelta, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pairwatch.config import settings
from pairwatch.database import SessionLocal
from pairwatch.models.user import User
from pairwatch.services.correlator import WatchlistCorrelator, watchlist_correlator
from pairwatch.services.pairing_requests import PairingRequestManager
from pairwatch.services.pairing_state import PairingStateMachine


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]

security = HTTPBearer()


def create_access_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "exp": datetime.now(timezone.utc)
        + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> User:
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    user = db.get(User, int(payload["sub"]))
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_request_manager(db: DbSession) -> PairingRequestManager:
    return PairingRequestManager(db)


def get_state_machine(db: DbSession) -> PairingStateMachine:
    return PairingStateMachine(db)


def get_correlator() -> WatchlistCorrelator:
    return watchlist_correlator


RequestManager = Annotated[PairingRequestManager, Depends(get_request_manager)]
StateMachine = Annotated[PairingStateMachine, Depends(get_state_machine)]
Correlator = Annotated[WatchlistCorrelator, Depends(get_correlator)]
