import threading
import weakref
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pairwatch.errors import StoreUnavailable, UserNotFound
from pairwatch.models.user import User


class _UserLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.Lock()


class UserLockRegistry:
    """Hands out one lock per user id.

    Locks are kept in a weak-value mapping so ids nobody currently holds are
    dropped instead of accumulating for the life of the process.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[int, _UserLock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, user_id: int) -> _UserLock:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = _UserLock()
                self._locks[user_id] = entry
            return entry

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, user_ids: Iterable[int]) -> Iterator[None]:
        """Hold the locks of every id, acquired in ascending id order."""
        entries = [self._lock_for(user_id) for user_id in sorted(set(user_ids))]
        acquired: list[_UserLock] = []
        try:
            for entry in entries:
                entry.lock.acquire()
                acquired.append(entry)
            yield
        finally:
            for entry in reversed(acquired):
                entry.lock.release()


user_locks = UserLockRegistry()


@contextmanager
def participants_locked(
    db: Session,
    user_ids: Iterable[int],
    registry: UserLockRegistry = user_locks,
) -> Iterator[None]:
    """Run a check-then-write unit exclusively for the given users.

    The in-process locks serialize handlers of this process; the user rows
    selected FOR UPDATE serialize other processes on databases that support
    row locks. The body must commit before the block exits, otherwise the
    row locks outlive the in-process ones. Any error rolls the session back
    before the in-process locks are released.

    Raises:
        UserNotFound: if any of the ids has no user row.
        StoreUnavailable: if the database cannot be reached.
    """
    ids = sorted(set(user_ids))
    with registry.hold(ids):
        try:
            found = db.execute(
                select(User.id)
                .where(User.id.in_(ids))
                .order_by(User.id)
                .with_for_update()
            ).scalars().all()
            if len(found) != len(ids):
                missing = sorted(set(ids) - set(found))
                raise UserNotFound(f"User {missing[0]} not found.")
            yield
        except Exception as exc:
            try:
                db.rollback()
            finally:
                if isinstance(exc, OperationalError):
                    raise StoreUnavailable() from exc
            raise
