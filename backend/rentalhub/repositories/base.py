"""Abstract ledger and product-lookup interfaces.

The availability calculator and the arbiter only talk to these, so the
overlap query and the atomicity strategy can be swapped (SQL, in-memory)
without touching reservation logic.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import List, Optional

from rentalhub.models.reservation import Reservation, ReservationStatus
from rentalhub.services.errors import InvalidTransitionError, ValidationError


def validate_new_reservation(reservation: Reservation) -> None:
    if reservation.start_date is None or reservation.end_date is None:
        raise ValidationError("Reservation start and end dates are required")
    if reservation.end_date <= reservation.start_date:
        raise ValidationError("Reservation end date must be after start date")
    if reservation.quantity is None or reservation.quantity < 1:
        raise ValidationError("Reservation quantity must be at least 1")


def check_transition(reservation: Reservation, new_status: str) -> None:
    if new_status not in ReservationStatus.TERMINAL:
        raise InvalidTransitionError(reservation.id, reservation.status, new_status)
    if reservation.status != ReservationStatus.ACTIVE:
        raise InvalidTransitionError(reservation.id, reservation.status, new_status)


class ProductCatalog(ABC):

    @abstractmethod
    def quantity_on_hand(self, product_id: int) -> int:
        """Return on-hand stock; raise NotFoundError if the product is unknown or not rentable."""


class ReservationRepository(ABC):

    @abstractmethod
    def find_overlapping(
        self,
        product_id: int,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[Reservation]:
        """Return active reservations of the product intersecting [start, end)."""

    @abstractmethod
    def insert(self, reservation: Reservation) -> Reservation:
        """Persist a new reservation and return it with its id assigned."""

    @abstractmethod
    def get(self, reservation_id: int) -> Reservation:
        """Return the reservation or raise NotFoundError."""

    @abstractmethod
    def set_status(self, reservation_id: int, new_status: str) -> Reservation:
        """Move an active reservation to a terminal status."""

    @abstractmethod
    def complete_by_source(self, source_type: str, source_id: int) -> int:
        """Complete every active reservation created by the source; return the count."""

    @abstractmethod
    def expire_stale(self, now: datetime) -> int:
        """Expire active quotation holds with expires_at < now; return the count."""

    @abstractmethod
    def list_by_source(self, source_type: str, source_id: int) -> List[Reservation]:
        """Return every reservation created by the source, any status."""

    @abstractmethod
    def list_for_product(self, product_id: int, status: Optional[str] = None) -> List[Reservation]:
        """Return reservations of a product, optionally filtered by status."""

    @abstractmethod
    def atomic(self, product_id: int) -> AbstractContextManager:
        """
        Critical section for one product. Availability reads and inserts made
        inside it are not interleaved with another caller's for the same product.
        Raises ConcurrencyConflictError when the section cannot be entered.
        """
