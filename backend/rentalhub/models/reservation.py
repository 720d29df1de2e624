from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from rentalhub.db import Base
from rentalhub.utils.dates import utcnow


class SourceType:
    QUOTATION = "quotation"
    RENTAL_ORDER = "rental_order"

    ALL = (QUOTATION, RENTAL_ORDER)


class ReservationStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    ALL = (ACTIVE, COMPLETED, CANCELLED, EXPIRED)
    TERMINAL = (COMPLETED, CANCELLED, EXPIRED)


class Reservation(Base):
    """
    A hold of `quantity` units of one product for the half-open window
    [start_date, end_date). Only `status` changes after insert.
    """

    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="reservations_dates_check"),
        CheckConstraint("quantity >= 1", name="reservations_quantity_check"),
        CheckConstraint(
            "status IN ('active', 'completed', 'cancelled', 'expired')",
            name="reservations_status_check",
        ),
        CheckConstraint(
            "source_type IN ('quotation', 'rental_order')",
            name="reservations_source_type_check",
        ),
        Index("ix_reservations_product_window", "product_id", "start_date", "end_date"),
        Index("ix_reservations_product_status", "product_id", "status"),
        Index("ix_reservations_source", "source_id", "source_type"),
        Index("ix_reservations_expiry", "expires_at", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    source_type = Column(String(32), nullable=False)
    source_id = Column(Integer, nullable=False)
    source_model = Column(String(32), nullable=False)  # Quotation, RentalOrder
    customer_id = Column(Integer, nullable=False)
    vendor_id = Column(Integer, nullable=False)
    status = Column(
        String(32), nullable=False, default=ReservationStatus.ACTIVE
    )  # active, completed, cancelled, expired
    priority = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE

    def overlaps_with(self, start: datetime, end: datetime) -> bool:
        return (
            (start <= self.start_date < end)
            or (start < self.end_date <= end)
            or (self.start_date <= start and self.end_date >= end)
        )

    def __repr__(self):
        return (
            f"<Reservation id={self.id} product={self.product_id} qty={self.quantity} "
            f"[{self.start_date}, {self.end_date}) {self.status}>"
        )
