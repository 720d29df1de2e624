"""In-memory ledger and product catalog.

Same interfaces as the SQL repositories, backed by dicts. Used by tests and
by callers that embed the arbiter without a database.
"""

import itertools
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from rentalhub.config import settings
from rentalhub.models.reservation import Reservation, ReservationStatus, SourceType
from rentalhub.repositories.base import (
    ProductCatalog,
    ReservationRepository,
    check_transition,
    validate_new_reservation,
)
from rentalhub.services.errors import ConcurrencyConflictError, NotFoundError
from rentalhub.utils.dates import utcnow


class InMemoryProductCatalog(ProductCatalog):

    def __init__(self, stock: Optional[Dict[int, int]] = None):
        self._stock: Dict[int, int] = dict(stock or {})

    def set_stock(self, product_id: int, quantity_on_hand: int) -> None:
        self._stock[product_id] = quantity_on_hand

    def quantity_on_hand(self, product_id: int) -> int:
        if product_id not in self._stock:
            raise NotFoundError(f"Product {product_id} not found")
        return self._stock[product_id]


class InMemoryReservationRepository(ReservationRepository):

    def __init__(self, lock_timeout: Optional[float] = None):
        self._store: Dict[int, Reservation] = {}
        self._ids = itertools.count(1)
        self._lock_timeout = (
            settings.RESERVATION_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        )
        # guards _store itself; product locks guard check-then-insert
        self._mutex = threading.RLock()
        self._product_locks = defaultdict(threading.Lock)

    def find_overlapping(
        self,
        product_id: int,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[Reservation]:
        with self._mutex:
            found = [
                r
                for r in self._store.values()
                if r.product_id == product_id
                and r.status == ReservationStatus.ACTIVE
                and r.id != exclude_reservation_id
                and r.overlaps_with(start, end)
            ]
        return sorted(found, key=lambda r: (r.start_date, r.id))

    def insert(self, reservation: Reservation) -> Reservation:
        validate_new_reservation(reservation)
        with self._mutex:
            reservation.id = next(self._ids)
            now = utcnow()
            reservation.created_at = now
            reservation.updated_at = now
            self._store[reservation.id] = reservation
        return reservation

    def get(self, reservation_id: int) -> Reservation:
        with self._mutex:
            r = self._store.get(reservation_id)
        if r is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return r

    def set_status(self, reservation_id: int, new_status: str) -> Reservation:
        with self._mutex:
            r = self.get(reservation_id)
            check_transition(r, new_status)
            r.status = new_status
            r.updated_at = utcnow()
        return r

    def _bulk_transition(self, new_status: str, predicate) -> int:
        with self._mutex:
            matched = [
                r
                for r in self._store.values()
                if r.status == ReservationStatus.ACTIVE and predicate(r)
            ]
            now = utcnow()
            for r in matched:
                r.status = new_status
                r.updated_at = now
        return len(matched)

    def complete_by_source(self, source_type: str, source_id: int) -> int:
        return self._bulk_transition(
            ReservationStatus.COMPLETED,
            lambda r: r.source_type == source_type and r.source_id == source_id,
        )

    def expire_stale(self, now: datetime) -> int:
        return self._bulk_transition(
            ReservationStatus.EXPIRED,
            lambda r: r.source_type == SourceType.QUOTATION
            and r.expires_at is not None
            and r.expires_at < now,
        )

    def list_by_source(self, source_type: str, source_id: int) -> List[Reservation]:
        with self._mutex:
            found = [
                r
                for r in self._store.values()
                if r.source_type == source_type and r.source_id == source_id
            ]
        return sorted(found, key=lambda r: r.id)

    def list_for_product(self, product_id: int, status: Optional[str] = None) -> List[Reservation]:
        with self._mutex:
            found = [
                r
                for r in self._store.values()
                if r.product_id == product_id and (status is None or r.status == status)
            ]
        return sorted(found, key=lambda r: (r.start_date, r.id))

    @contextmanager
    def atomic(self, product_id: int) -> Iterator[None]:
        with self._mutex:
            lock = self._product_locks[product_id]
        if not lock.acquire(timeout=self._lock_timeout):
            raise ConcurrencyConflictError(
                f"Could not acquire reservation lock for product {product_id}; try again"
            )
        try:
            yield
        finally:
            lock.release()
