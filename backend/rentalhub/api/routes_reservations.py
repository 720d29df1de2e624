from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentalhub.api.errors import to_http
from rentalhub.db import get_db
from rentalhub.schemas.reservation_schema import (
    CompleteBySourceIn,
    RescheduleIn,
    ReservationOut,
    ReserveIn,
)
from rentalhub.services.errors import ReservationException
from rentalhub.services.reservation_service import arbiter_for_session

router = APIRouter(prefix="/api/reservations", tags=["reservations"])


@router.post("", summary="Reserve product quantity for a window", response_model=ReservationOut)
def reserve(payload: ReserveIn, db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    try:
        return svc.reserve(
            payload.product_id,
            payload.quantity,
            payload.start_date,
            payload.end_date,
            payload.source_type,
            payload.source_id,
            payload.customer_id,
            payload.vendor_id,
            expires_at=payload.expires_at,
            notes=payload.notes,
            ttl_seconds=payload.ttl_seconds,
        )
    except ReservationException as e:
        raise to_http(e)


@router.get("", summary="List reservations created by a quotation or order", response_model=List[ReservationOut])
def list_by_source(
    source_type: str = Query(...),
    source_id: int = Query(...),
    db: Session = Depends(get_db),
):
    svc = arbiter_for_session(db)
    try:
        return svc.list_by_source(source_type, source_id)
    except ReservationException as e:
        raise to_http(e)


@router.post("/complete", summary="Complete every active hold of a source")
def complete_by_source(payload: CompleteBySourceIn, db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    try:
        count = svc.complete_by_source(payload.source_type, payload.source_id)
    except ReservationException as e:
        raise to_http(e)
    return {"completed": count}


@router.post("/expire", summary="Expire stale quotation holds")
def expire_stale(db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    return {"expired": svc.expire_stale()}


@router.get("/{reservation_id}", response_model=ReservationOut)
def get_reservation(reservation_id: int, db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    try:
        return svc.get(reservation_id)
    except ReservationException as e:
        raise to_http(e)


@router.post("/{reservation_id}/release", response_model=ReservationOut)
def release(reservation_id: int, db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    try:
        return svc.release(reservation_id)
    except ReservationException as e:
        raise to_http(e)


@router.post("/{reservation_id}/reschedule", response_model=ReservationOut)
def reschedule(reservation_id: int, payload: RescheduleIn, db: Session = Depends(get_db)):
    svc = arbiter_for_session(db)
    try:
        return svc.reschedule(
            reservation_id,
            quantity=payload.quantity,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
    except ReservationException as e:
        raise to_http(e)


@router.get("/{reservation_id}/extension", summary="Check whether a hold can be extended")
def check_extension(
    reservation_id: int,
    new_end: datetime = Query(...),
    db: Session = Depends(get_db),
):
    svc = arbiter_for_session(db)
    try:
        check = svc.availability.check_extension(reservation_id, new_end)
    except ReservationException as e:
        raise to_http(e)
    return {
        "reservation_id": check.reservation_id,
        "current_end": check.current_end.isoformat(),
        "new_end": check.new_end.isoformat(),
        "possible": check.possible,
        "availability": check.result.to_dict(),
    }
