from datetime import datetime, timedelta
from typing import Optional

from rentalhub.config import settings
from rentalhub.models.reservation import Reservation, SourceType
from rentalhub.services.errors import ValidationError

_PRIORITY = {
    SourceType.QUOTATION: 1,
    SourceType.RENTAL_ORDER: 10,
}

_SOURCE_MODEL = {
    SourceType.QUOTATION: "Quotation",
    SourceType.RENTAL_ORDER: "RentalOrder",
}


class ReservationPolicy:
    """
    Order-backed holds outrank quotation-backed ones, and quotation holds are
    temporary. Priority is written onto the reservation at creation so older
    rows keep the weight that applied when they were made.
    """

    def __init__(self, quotation_ttl_seconds: Optional[int] = None):
        self.quotation_ttl_seconds = (
            settings.QUOTATION_HOLD_TTL_SECONDS
            if quotation_ttl_seconds is None
            else quotation_ttl_seconds
        )

    def validate_source_type(self, source_type: str) -> str:
        if source_type not in SourceType.ALL:
            raise ValidationError(
                f"Unknown source type {source_type!r}; expected one of {', '.join(SourceType.ALL)}"
            )
        return source_type

    def priority_for(self, source_type: str) -> int:
        return _PRIORITY[self.validate_source_type(source_type)]

    def source_model_for(self, source_type: str) -> str:
        return _SOURCE_MODEL[self.validate_source_type(source_type)]

    def default_expiry(
        self, source_type: str, now: datetime, ttl_seconds: Optional[int] = None
    ) -> Optional[datetime]:
        """Quotation holds lapse after a TTL; rental order holds never expire on their own."""
        self.validate_source_type(source_type)
        if source_type != SourceType.QUOTATION:
            return None
        ttl = self.quotation_ttl_seconds if ttl_seconds is None else ttl_seconds
        return now + timedelta(seconds=ttl)

    def resolve_conflict(self, candidate: Reservation, incumbent: Reservation) -> bool:
        """
        Return True if `candidate` may displace `incumbent`. Priority is stored
        on every reservation but nothing pre-empts yet; subclasses can override.
        """
        return False
