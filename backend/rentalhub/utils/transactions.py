from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session, SessionTransactionOrigin


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Context manager that begins a transaction on the given Session.
    If a transaction is already active, start a nested SAVEPOINT (begin_nested).
    Otherwise start a normal transaction (begin), committed on exit.
    Usage:
        with smart_transaction(db):
            ... DB work ...
    """
    if session.in_transaction():
        cm = session.begin_nested()
    else:
        cm = session.begin()
    with cm:
        yield


def close_idle_transaction(session: Session) -> None:
    """
    Commit a transaction that was autobegun by earlier reads and holds no
    pending writes. Otherwise smart_transaction would only open a SAVEPOINT
    and the work would stay uncommitted until the caller commits.
    Transactions the caller began explicitly are left alone.
    """
    txn = session.get_transaction()
    if (
        txn is not None
        and txn.origin is SessionTransactionOrigin.AUTOBEGIN
        and not (session.new or session.dirty or session.deleted)
    ):
        session.commit()
