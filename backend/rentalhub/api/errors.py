from fastapi import HTTPException

from rentalhub.services.errors import (
    CapacityError,
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    ReservationException,
)


def to_http(e: ReservationException) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CapacityError):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "availableQuantity": e.available_quantity,
                "requestedQuantity": e.requested_quantity,
                "shortfall": e.shortfall,
            },
        )
    if isinstance(e, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ConcurrencyConflictError):
        return HTTPException(status_code=503, detail=str(e), headers={"Retry-After": "1"})
    return HTTPException(status_code=400, detail=str(e))
