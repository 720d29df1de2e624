# backend/rentalhub/schemas/reservation_schema.py
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReserveIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    start_date: datetime
    end_date: datetime
    source_type: Literal["quotation", "rental_order"]
    source_id: int
    customer_id: int
    vendor_id: int
    expires_at: Optional[datetime] = None
    ttl_seconds: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None


class RescheduleIn(BaseModel):
    quantity: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CompleteBySourceIn(BaseModel):
    source_type: Literal["quotation", "rental_order"]
    source_id: int


class AvailabilityItemIn(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    start_date: datetime
    end_date: datetime


class BatchAvailabilityIn(BaseModel):
    items: List[AvailabilityItemIn]


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    quantity: int
    start_date: datetime
    end_date: datetime
    source_type: str
    source_id: int
    source_model: str
    customer_id: int
    vendor_id: int
    status: str
    priority: int
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None


class DayAvailabilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    day: date
    total_on_hand: int
    reserved_quantity: int
    available_quantity: int
    is_available: bool
