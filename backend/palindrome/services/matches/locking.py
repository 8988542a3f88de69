"""Row locking for the few writes that must not interleave.

PostgreSQL gets real row locks (``SELECT ... FOR UPDATE``). SQLite, used in
development and tests, has no row locks, so writers there are serialized by
one process-wide lock instead. Callers commit before leaving the block.
"""

from contextlib import contextmanager
import threading

from sqlalchemy import select

from palindrome.models import Match

_write_lock = threading.RLock()


def supports_row_locks(session) -> bool:
    return session.get_bind().dialect.name == 'postgresql'


@contextmanager
def serialized_writes(session):
    """Hold the process-wide writer lock when the database lacks row locks."""
    if supports_row_locks(session):
        try:
            yield
        finally:
            # Every exit ends the transaction, so FOR UPDATE locks taken on
            # paths that never commit are released here
            session.rollback()
        return

    with _write_lock:
        try:
            yield
        except Exception:
            session.rollback()
            raise
        finally:
            # Release the connection while still holding the lock; SQLite
            # test pools may share one connection between threads.
            session.close()


@contextmanager
def locked_match(session, match_id: int):
    """Yield the match row locked for update, or None when it does not exist."""
    with serialized_writes(session):
        stmt = select(Match).where(Match.id == match_id).execution_options(populate_existing=True)
        if supports_row_locks(session):
            stmt = stmt.with_for_update()
        yield session.execute(stmt).scalar_one_or_none()
