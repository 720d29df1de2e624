import threading
from datetime import datetime

import pytest

from rentalhub.models.reservation import ReservationStatus
from rentalhub.repositories.memory_repo import InMemoryReservationRepository
from rentalhub.services.errors import (
    CapacityError,
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
)

JUNE_1 = datetime(2024, 6, 1)
JUNE_5 = datetime(2024, 6, 5)


def test_reserve_and_release(memory_arbiter):
    r = memory_arbiter.reserve(1, 3, JUNE_1, JUNE_5, "quotation", 1, 10, 1)
    assert r.id == 1
    assert memory_arbiter.check_availability(1, datetime(2024, 6, 3), datetime(2024, 6, 7)).available_quantity == 2

    memory_arbiter.release(r.id)
    assert memory_arbiter.check_availability(1, JUNE_1, JUNE_5).available_quantity == 5
    with pytest.raises(InvalidTransitionError):
        memory_arbiter.set_status(r.id, ReservationStatus.ACTIVE)


def test_unknown_product(memory_arbiter):
    with pytest.raises(NotFoundError):
        memory_arbiter.reserve(99, 1, JUNE_1, JUNE_5, "quotation", 1, 10, 1)


def test_expire_and_complete(memory_arbiter):
    quote = memory_arbiter.reserve(1, 1, JUNE_1, JUNE_5, "quotation", 1, 10, 1, expires_at=datetime(2024, 5, 1))
    order = memory_arbiter.reserve(1, 1, JUNE_1, JUNE_5, "rental_order", 2, 10, 1)

    assert memory_arbiter.expire_stale() == 1
    assert memory_arbiter.expire_stale() == 0
    assert quote.status == ReservationStatus.EXPIRED

    assert memory_arbiter.complete_by_source("rental_order", 2) == 1
    assert order.status == ReservationStatus.COMPLETED


def test_concurrent_reserves_never_oversell(memory_arbiter):
    outcomes = []
    barrier = threading.Barrier(20)

    def worker(i):
        barrier.wait()
        try:
            memory_arbiter.reserve(1, 1, JUNE_1, JUNE_5, "quotation", i, 10, 1)
            outcomes.append("ok")
        except CapacityError:
            outcomes.append("full")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 5
    assert outcomes.count("full") == 15
    active = memory_arbiter.ledger.list_for_product(1, status=ReservationStatus.ACTIVE)
    assert sum(r.quantity for r in active) == 5


def test_atomic_times_out_when_product_is_held():
    ledger = InMemoryReservationRepository(lock_timeout=0.05)
    entered = threading.Event()
    release = threading.Event()

    def holder():
        with ledger.atomic(1):
            entered.set()
            release.wait(2)

    t = threading.Thread(target=holder)
    t.start()
    entered.wait(2)
    try:
        with pytest.raises(ConcurrencyConflictError):
            with ledger.atomic(1):
                pass
        # other products are not blocked
        with ledger.atomic(2):
            pass
    finally:
        release.set()
        t.join()
