from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentalhub.api.errors import to_http
from rentalhub.db import get_db
from rentalhub.schemas.reservation_schema import BatchAvailabilityIn, DayAvailabilityOut
from rentalhub.services.errors import ReservationException
from rentalhub.services.reservation_service import arbiter_for_session

router = APIRouter(tags=["availability"])


@router.get("/api/products/{product_id}/availability")
def check_availability(
    product_id: int,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    quantity: Optional[int] = Query(None, ge=1),
    exclude_reservation_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    svc = arbiter_for_session(db)
    try:
        result = svc.check_availability(
            product_id, start_date, end_date, exclude_reservation_id=exclude_reservation_id
        )
    except ReservationException as e:
        raise to_http(e)
    body = {"productId": product_id, **result.to_dict()}
    if quantity is not None:
        body["requestedQuantity"] = quantity
        body["fits"] = result.fits(quantity)
        body["shortfall"] = result.shortfall(quantity)
    return body


@router.get("/api/products/{product_id}/availability/calendar")
def availability_calendar(
    product_id: int,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: Session = Depends(get_db),
):
    svc = arbiter_for_session(db)
    try:
        days = svc.availability.availability_calendar(product_id, start_date, end_date)
    except ReservationException as e:
        raise to_http(e)
    return {
        "productId": product_id,
        "days": [DayAvailabilityOut.model_validate(d).model_dump(mode="json") for d in days],
    }


@router.get("/api/products/{product_id}/availability/utilization")
def utilization(
    product_id: int,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: Session = Depends(get_db),
):
    svc = arbiter_for_session(db)
    try:
        usage = svc.availability.utilization(product_id, start_date, end_date)
    except ReservationException as e:
        raise to_http(e)
    return {"productId": product_id, **usage.to_dict()}


@router.get("/api/products/{product_id}/availability/next")
def next_available_window(
    product_id: int,
    quantity: int = Query(1, ge=1),
    duration_days: int = Query(1, ge=1),
    search_from: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    svc = arbiter_for_session(db)
    try:
        window = svc.availability.next_available_window(
            product_id, quantity, duration_days=duration_days, search_from=search_from
        )
    except ReservationException as e:
        raise to_http(e)
    if window is None:
        return {"productId": product_id, "available": False}
    return {
        "productId": product_id,
        "available": True,
        "startDate": window.start_date.isoformat(),
        "endDate": window.end_date.isoformat(),
        "availableQuantity": window.available_quantity,
    }


@router.post("/api/availability/batch")
def check_many(payload: BatchAvailabilityIn, db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    try:
        batch = svc.availability.check_many([it.model_dump() for it in payload.items])
    except ReservationException as e:
        raise to_http(e)
    return {
        "available": batch.available,
        "items": [
            {
                "productId": it.product_id,
                "quantity": it.quantity,
                "fits": it.fits,
                **it.result.to_dict(),
            }
            for it in batch.items
        ],
    }
