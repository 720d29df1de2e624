from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from rentalhub.models.reservation import Reservation, ReservationStatus, SourceType
from rentalhub.repositories.base import ProductCatalog, ReservationRepository
from rentalhub.repositories.product_repo import ProductRepository
from rentalhub.repositories.reservation_repo import SqlReservationRepository
from rentalhub.services.availability_service import (
    AvailabilityResult,
    AvailabilityService,
    normalize_window,
)
from rentalhub.services.errors import (
    CapacityError,
    InvalidTransitionError,
    ValidationError,
)
from rentalhub.services.reservation_policy import ReservationPolicy
from rentalhub.utils.dates import DateLike, to_utc_naive, utcnow
from rentalhub.utils.log import get_logger

log = get_logger("reservations")


def _validate_quantity(quantity) -> int:
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be an integer")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return quantity


class ReservationArbiter:
    """
    The only way reservations are created or change status.

    `reserve` runs its availability check and insert inside the ledger's
    per-product critical section, so two callers cannot both claim the last
    free units of a window.
    """

    def __init__(
        self,
        ledger: ReservationRepository,
        catalog: ProductCatalog,
        policy: Optional[ReservationPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.policy = policy or ReservationPolicy()
        self.clock = clock
        self.availability = AvailabilityService(ledger, catalog, clock=clock)

    def check_availability(
        self,
        product_id: int,
        start_date: DateLike,
        end_date: DateLike,
        exclude_reservation_id: Optional[int] = None,
    ) -> AvailabilityResult:
        return self.availability.check_availability(
            product_id, start_date, end_date, exclude_reservation_id=exclude_reservation_id
        )

    def reserve(
        self,
        product_id: int,
        quantity: int,
        start_date: DateLike,
        end_date: DateLike,
        source_type: str,
        source_id: int,
        customer_id: int,
        vendor_id: int,
        expires_at: Optional[DateLike] = None,
        notes: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> Reservation:
        quantity = _validate_quantity(quantity)
        start, end = normalize_window(start_date, end_date)
        priority = self.policy.priority_for(source_type)
        source_model = self.policy.source_model_for(source_type)

        if expires_at is not None:
            if source_type != SourceType.QUOTATION:
                raise ValidationError("Only quotation reservations can carry an expiry")
            expires_at = to_utc_naive(expires_at)
        else:
            expires_at = self.policy.default_expiry(source_type, self.clock(), ttl_seconds)

        with self.ledger.atomic(product_id):
            availability = self.availability.check_availability(product_id, start, end)
            if not availability.fits(quantity):
                log.info(
                    "Rejected reservation of %s x product %s for [%s, %s): only %s available",
                    quantity, product_id, start, end, availability.available_quantity,
                )
                raise CapacityError(availability.available_quantity, quantity)

            r = Reservation(
                product_id=product_id,
                quantity=quantity,
                start_date=start,
                end_date=end,
                source_type=source_type,
                source_id=source_id,
                source_model=source_model,
                customer_id=customer_id,
                vendor_id=vendor_id,
                status=ReservationStatus.ACTIVE,
                priority=priority,
                expires_at=expires_at,
                notes=notes,
            )
            self.ledger.insert(r)

        log.info(
            "Reserved %s x product %s for [%s, %s) from %s %s",
            quantity, product_id, start, end, source_type, source_id,
        )
        return r

    def get(self, reservation_id: int) -> Reservation:
        return self.ledger.get(reservation_id)

    def set_status(self, reservation_id: int, new_status: str) -> Reservation:
        r = self.ledger.set_status(reservation_id, new_status)
        log.info("Reservation %s -> %s", reservation_id, new_status)
        return r

    def release(self, reservation_id: int) -> Reservation:
        """Cancel a hold. Releasing an already-cancelled hold returns it unchanged."""
        r = self.ledger.get(reservation_id)
        if r.status == ReservationStatus.CANCELLED:
            return r
        return self.set_status(reservation_id, ReservationStatus.CANCELLED)

    def complete_by_source(self, source_type: str, source_id: int) -> int:
        self.policy.validate_source_type(source_type)
        count = self.ledger.complete_by_source(source_type, source_id)
        log.info("Completed %s reservation(s) for %s %s", count, source_type, source_id)
        return count

    def expire_stale(self, now: Optional[datetime] = None) -> int:
        now = to_utc_naive(now) if now is not None else self.clock()
        count = self.ledger.expire_stale(now)
        if count:
            log.info("Expired %s stale quotation reservation(s)", count)
        return count

    def reschedule(
        self,
        reservation_id: int,
        quantity: Optional[int] = None,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
    ) -> Reservation:
        """
        Change a hold's quantity or window by cancelling it and creating a
        replacement in one critical section. The old hold does not count
        against the new window.
        """
        current = self.ledger.get(reservation_id)
        if not current.is_active:
            raise InvalidTransitionError(
                reservation_id, current.status, ReservationStatus.CANCELLED
            )
        quantity = _validate_quantity(current.quantity if quantity is None else quantity)
        start, end = normalize_window(
            current.start_date if start_date is None else start_date,
            current.end_date if end_date is None else end_date,
        )

        with self.ledger.atomic(current.product_id):
            availability = self.availability.check_availability(
                current.product_id, start, end, exclude_reservation_id=current.id
            )
            if not availability.fits(quantity):
                raise CapacityError(availability.available_quantity, quantity)

            self.ledger.set_status(current.id, ReservationStatus.CANCELLED)
            replacement = Reservation(
                product_id=current.product_id,
                quantity=quantity,
                start_date=start,
                end_date=end,
                source_type=current.source_type,
                source_id=current.source_id,
                source_model=current.source_model,
                customer_id=current.customer_id,
                vendor_id=current.vendor_id,
                status=ReservationStatus.ACTIVE,
                priority=current.priority,
                expires_at=current.expires_at,
                notes=current.notes,
            )
            self.ledger.insert(replacement)

        log.info("Rescheduled reservation %s as %s", reservation_id, replacement.id)
        return replacement

    def list_by_source(self, source_type: str, source_id: int) -> List[Reservation]:
        self.policy.validate_source_type(source_type)
        return self.ledger.list_by_source(source_type, source_id)


def arbiter_for_session(db: Session, policy: Optional[ReservationPolicy] = None) -> ReservationArbiter:
    return ReservationArbiter(
        SqlReservationRepository(db), ProductRepository(db), policy=policy
    )
