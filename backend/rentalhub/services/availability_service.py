from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from rentalhub.config import settings
from rentalhub.repositories.base import ProductCatalog, ReservationRepository
from rentalhub.services.errors import ValidationError
from rentalhub.utils.dates import DateLike, day_floor, iter_days, to_utc_naive, utcnow

# upper bound on the number of days a calendar request may span
MAX_CALENDAR_DAYS = 366


def normalize_window(start: DateLike, end: DateLike) -> Tuple[datetime, datetime]:
    if start is None or end is None:
        raise ValidationError("Start and end dates are required")
    try:
        start, end = to_utc_naive(start), to_utc_naive(end)
    except TypeError as e:
        raise ValidationError(str(e))
    if end <= start:
        raise ValidationError("End date must be after start date")
    return start, end


@dataclass
class AvailabilityResult:
    available: bool
    available_quantity: int
    total_on_hand: int
    total_reserved: int
    overlap_count: int

    def fits(self, quantity: int) -> bool:
        return self.available_quantity >= quantity

    def shortfall(self, quantity: int) -> int:
        return max(0, quantity - self.available_quantity)

    def to_dict(self) -> Dict:
        return {
            "available": self.available,
            "availableQuantity": self.available_quantity,
            "totalOnHand": self.total_on_hand,
            "totalReserved": self.total_reserved,
            "overlapCount": self.overlap_count,
        }


@dataclass
class ItemAvailability:
    product_id: int
    quantity: int
    start_date: datetime
    end_date: datetime
    result: AvailabilityResult

    @property
    def fits(self) -> bool:
        return self.result.fits(self.quantity)


@dataclass
class BatchAvailability:
    items: List[ItemAvailability] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return all(item.fits for item in self.items)

    @property
    def unavailable_product_ids(self) -> List[int]:
        return [item.product_id for item in self.items if not item.fits]


@dataclass
class DayAvailability:
    day: date
    total_on_hand: int
    reserved_quantity: int

    @property
    def available_quantity(self) -> int:
        return max(0, self.total_on_hand - self.reserved_quantity)

    @property
    def is_available(self) -> bool:
        return self.available_quantity > 0


@dataclass
class AvailableWindow:
    start_date: datetime
    end_date: datetime
    available_quantity: int


@dataclass
class Utilization:
    total_days: int
    rented_days: int

    @property
    def available_days(self) -> int:
        return self.total_days - self.rented_days

    @property
    def utilization_rate(self) -> float:
        """Percentage of days with at least one unit held, to 2 decimals."""
        if not self.total_days:
            return 0.0
        return round(self.rented_days / self.total_days * 100, 2)

    def to_dict(self) -> Dict:
        return {
            "utilizationRate": self.utilization_rate,
            "totalDays": self.total_days,
            "rentedDays": self.rented_days,
            "availableDays": self.available_days,
        }


@dataclass
class ExtensionCheck:
    reservation_id: int
    current_end: datetime
    new_end: datetime
    result: AvailabilityResult
    possible: bool


class AvailabilityService:
    """
    Free quantity = on-hand stock minus the summed quantity of every active
    reservation overlapping the window. Reads only; never writes the ledger.
    """

    def __init__(
        self,
        ledger: ReservationRepository,
        catalog: ProductCatalog,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.clock = clock

    def check_availability(
        self,
        product_id: int,
        start: DateLike,
        end: DateLike,
        exclude_reservation_id: Optional[int] = None,
    ) -> AvailabilityResult:
        """
        `available` reports whether any unit is free. Use `fits(quantity)` on
        the result to test a specific quantity.
        """
        start, end = normalize_window(start, end)
        total_on_hand = self.catalog.quantity_on_hand(product_id)
        overlapping = self.ledger.find_overlapping(
            product_id, start, end, exclude_reservation_id=exclude_reservation_id
        )
        total_reserved = sum(r.quantity for r in overlapping)
        available_quantity = max(0, total_on_hand - total_reserved)
        return AvailabilityResult(
            available=available_quantity > 0,
            available_quantity=available_quantity,
            total_on_hand=total_on_hand,
            total_reserved=total_reserved,
            overlap_count=len(overlapping),
        )

    def check_many(self, items: List[Dict]) -> BatchAvailability:
        """items: list of {product_id, quantity, start_date, end_date}"""
        batch = BatchAvailability()
        for it in items:
            product_id = it.get("product_id")
            if product_id is None:
                raise ValidationError("Each item needs a product_id")
            try:
                quantity = int(it.get("quantity", 1))
            except (TypeError, ValueError):
                raise ValidationError("Quantity must be an integer")
            if quantity < 1:
                raise ValidationError("Quantity must be at least 1")
            start, end = normalize_window(it.get("start_date"), it.get("end_date"))
            result = self.check_availability(product_id, start, end)
            batch.items.append(
                ItemAvailability(
                    product_id=product_id,
                    quantity=quantity,
                    start_date=start,
                    end_date=end,
                    result=result,
                )
            )
        return batch

    def availability_calendar(
        self, product_id: int, start: DateLike, end: DateLike
    ) -> List[DayAvailability]:
        start, end = normalize_window(start, end)
        days = list(iter_days(start, end))
        if len(days) > MAX_CALENDAR_DAYS:
            raise ValidationError(f"Calendar window may span at most {MAX_CALENDAR_DAYS} days")

        total_on_hand = self.catalog.quantity_on_hand(product_id)
        overlapping = self.ledger.find_overlapping(
            product_id, days[0], days[-1] + timedelta(days=1)
        )
        calendar = []
        for day_start in days:
            day_end = day_start + timedelta(days=1)
            reserved = sum(r.quantity for r in overlapping if r.overlaps_with(day_start, day_end))
            calendar.append(
                DayAvailability(
                    day=day_start.date(),
                    total_on_hand=total_on_hand,
                    reserved_quantity=reserved,
                )
            )
        return calendar

    def utilization(self, product_id: int, start: DateLike, end: DateLike) -> Utilization:
        """Share of calendar days in the window on which any unit is held."""
        days = self.availability_calendar(product_id, start, end)
        return Utilization(
            total_days=len(days),
            rented_days=sum(1 for d in days if d.reserved_quantity > 0),
        )

    def next_available_window(
        self,
        product_id: int,
        quantity: int,
        duration_days: int = 1,
        search_from: Optional[DateLike] = None,
        max_search_days: Optional[int] = None,
    ) -> Optional[AvailableWindow]:
        """
        Earliest day-aligned window of `duration_days` starting within the
        search horizon in which `quantity` units are free, or None.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if duration_days < 1:
            raise ValidationError("Duration must be at least one day")
        if max_search_days is None:
            max_search_days = settings.AVAILABILITY_SEARCH_DAYS

        first_day = day_floor(to_utc_naive(search_from) if search_from else self.clock())
        horizon_end = first_day + timedelta(days=max_search_days + duration_days)

        total_on_hand = self.catalog.quantity_on_hand(product_id)
        if total_on_hand < quantity:
            return None
        overlapping = self.ledger.find_overlapping(product_id, first_day, horizon_end)

        for offset in range(max_search_days):
            start = first_day + timedelta(days=offset)
            end = start + timedelta(days=duration_days)
            reserved = sum(r.quantity for r in overlapping if r.overlaps_with(start, end))
            free = total_on_hand - reserved
            if free >= quantity:
                return AvailableWindow(start_date=start, end_date=end, available_quantity=free)
        return None

    def check_extension(self, reservation_id: int, new_end: DateLike) -> ExtensionCheck:
        """Can an active hold keep its units until `new_end`?"""
        r = self.ledger.get(reservation_id)
        if not r.is_active:
            raise ValidationError(f"Reservation {reservation_id} is {r.status}, not active")
        try:
            new_end = to_utc_naive(new_end)
        except TypeError as e:
            raise ValidationError(str(e))
        if new_end <= r.end_date:
            raise ValidationError("New end date must be after the current end date")
        result = self.check_availability(
            r.product_id, r.end_date, new_end, exclude_reservation_id=r.id
        )
        return ExtensionCheck(
            reservation_id=r.id,
            current_end=r.end_date,
            new_end=new_end,
            result=result,
            possible=result.fits(r.quantity),
        )
