from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from rentalhub.models.product import Product
from rentalhub.models.reservation import Reservation, ReservationStatus, SourceType
from rentalhub.repositories.base import (
    ReservationRepository,
    check_transition,
    validate_new_reservation,
)
from rentalhub.services.errors import ConcurrencyConflictError, NotFoundError
from rentalhub.utils.dates import utcnow
from rentalhub.utils.locks import product_lock
from rentalhub.utils.log import get_logger
from rentalhub.utils.transactions import close_idle_transaction, smart_transaction

log = get_logger("ledger")

# driver messages for lock waits/serialization failures that a retry can resolve
_RETRYABLE_MARKERS = ("database is locked", "could not serialize", "deadlock detected")


class SqlReservationRepository(ReservationRepository):
    def __init__(self, db: Session, lock_timeout: Optional[float] = None):
        self.db = db
        self.lock_timeout = lock_timeout

    def _overlap_query(self, product_id, start, end, exclude_reservation_id=None):
        qry = self.db.query(Reservation).filter(
            Reservation.product_id == product_id,
            Reservation.status == ReservationStatus.ACTIVE,
            or_(
                # starts inside the window
                and_(Reservation.start_date >= start, Reservation.start_date < end),
                # ends inside the window
                and_(Reservation.end_date > start, Reservation.end_date <= end),
                # encloses the window
                and_(Reservation.start_date <= start, Reservation.end_date >= end),
            ),
        )
        if exclude_reservation_id is not None:
            qry = qry.filter(Reservation.id != exclude_reservation_id)
        return qry

    def find_overlapping(
        self,
        product_id: int,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[Reservation]:
        return (
            self._overlap_query(product_id, start, end, exclude_reservation_id)
            .order_by(Reservation.start_date, Reservation.id)
            .all()
        )

    def insert(self, reservation: Reservation) -> Reservation:
        validate_new_reservation(reservation)
        self.db.add(reservation)
        self.db.flush()  # ensure id assigned
        return reservation

    def get(self, reservation_id: int) -> Reservation:
        r = self.db.get(Reservation, reservation_id)
        if not r:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return r

    def set_status(self, reservation_id: int, new_status: str) -> Reservation:
        close_idle_transaction(self.db)
        with smart_transaction(self.db):
            r = self.get(reservation_id)
            check_transition(r, new_status)
            # conditional update: only one caller can move the row out of active
            result = self.db.execute(
                update(Reservation)
                .where(
                    Reservation.id == reservation_id,
                    Reservation.status == ReservationStatus.ACTIVE,
                )
                .values(status=new_status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.refresh(r)
                check_transition(r, new_status)
            self.db.refresh(r)
        return r

    def _bulk_transition(self, new_status: str, *criteria) -> int:
        close_idle_transaction(self.db)
        with smart_transaction(self.db):
            result = self.db.execute(
                update(Reservation)
                .where(Reservation.status == ReservationStatus.ACTIVE, *criteria)
                .values(status=new_status, updated_at=utcnow())
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount

    def complete_by_source(self, source_type: str, source_id: int) -> int:
        return self._bulk_transition(
            ReservationStatus.COMPLETED,
            Reservation.source_type == source_type,
            Reservation.source_id == source_id,
        )

    def expire_stale(self, now: datetime) -> int:
        return self._bulk_transition(
            ReservationStatus.EXPIRED,
            Reservation.source_type == SourceType.QUOTATION,
            Reservation.expires_at.isnot(None),
            Reservation.expires_at < now,
        )

    def list_by_source(self, source_type: str, source_id: int) -> List[Reservation]:
        return (
            self.db.query(Reservation)
            .filter(
                Reservation.source_type == source_type,
                Reservation.source_id == source_id,
            )
            .order_by(Reservation.id)
            .all()
        )

    def list_for_product(self, product_id: int, status: Optional[str] = None) -> List[Reservation]:
        qry = self.db.query(Reservation).filter(Reservation.product_id == product_id)
        if status is not None:
            qry = qry.filter(Reservation.status == status)
        return qry.order_by(Reservation.start_date, Reservation.id).all()

    @contextmanager
    def atomic(self, product_id: int) -> Iterator[None]:
        with product_lock(product_id, timeout=self.lock_timeout):
            close_idle_transaction(self.db)
            try:
                with smart_transaction(self.db):
                    # row lock for multi-host deployments; a no-op on SQLite
                    self.db.query(Product.id).filter(Product.id == product_id).with_for_update().first()
                    yield
            except OperationalError as e:
                message = str(e.orig).lower() if e.orig is not None else str(e).lower()
                if any(marker in message for marker in _RETRYABLE_MARKERS):
                    log.warning("Reservation write for product %s hit contention: %s", product_id, message)
                    raise ConcurrencyConflictError(
                        f"Reservation for product {product_id} conflicted with a concurrent write; try again"
                    ) from e
                raise
