from datetime import datetime

import pytest

from rentalhub.services.errors import NotFoundError, ValidationError


def test_overlapping_request_counts_existing_hold(arbiter, products):
    p = products["P5"]
    arbiter.reserve(p, 3, datetime(2024, 6, 1), datetime(2024, 6, 5), "rental_order", 1, 10, 1)

    result = arbiter.check_availability(p, datetime(2024, 6, 3), datetime(2024, 6, 7))
    assert result.overlap_count == 1
    assert result.total_on_hand == 5
    assert result.total_reserved == 3
    assert result.available_quantity == 2
    assert result.available is True
    assert result.fits(2)
    assert not result.fits(3)
    assert result.shortfall(3) == 1


def test_window_starting_at_existing_end_does_not_overlap(arbiter, products):
    p = products["P5"]
    arbiter.reserve(p, 5, datetime(2024, 7, 1), datetime(2024, 7, 10), "rental_order", 1, 10, 1)

    after = arbiter.check_availability(p, datetime(2024, 7, 10), datetime(2024, 7, 15))
    assert after.overlap_count == 0
    assert after.available_quantity == 5

    before = arbiter.check_availability(p, datetime(2024, 6, 25), datetime(2024, 7, 1))
    assert before.available_quantity == 5

    last_day = arbiter.check_availability(p, datetime(2024, 7, 9), datetime(2024, 7, 10))
    assert last_day.available_quantity == 0
    assert last_day.available is False


def test_touching_reservations_only_match_their_own_window(arbiter, products):
    p = products["P5"]
    a = arbiter.reserve(p, 1, datetime(2024, 8, 1), datetime(2024, 8, 5), "rental_order", 1, 10, 1)
    b = arbiter.reserve(p, 2, datetime(2024, 8, 5), datetime(2024, 8, 10), "rental_order", 2, 10, 1)

    assert [r.id for r in arbiter.ledger.find_overlapping(p, datetime(2024, 8, 1), datetime(2024, 8, 5))] == [a.id]
    assert [r.id for r in arbiter.ledger.find_overlapping(p, datetime(2024, 8, 5), datetime(2024, 8, 10))] == [b.id]
    both = arbiter.ledger.find_overlapping(p, datetime(2024, 8, 4), datetime(2024, 8, 6))
    assert {r.id for r in both} == {a.id, b.id}


def test_enclosing_reservation_overlaps_inner_window(arbiter, products):
    p = products["P5"]
    arbiter.reserve(p, 4, datetime(2024, 9, 1), datetime(2024, 9, 30), "rental_order", 1, 10, 1)
    result = arbiter.check_availability(p, datetime(2024, 9, 10), datetime(2024, 9, 12))
    assert result.overlap_count == 1
    assert result.available_quantity == 1


def test_exclusion_ignores_the_given_reservation(arbiter, products):
    p = products["P5"]
    r = arbiter.reserve(p, 3, datetime(2024, 6, 1), datetime(2024, 6, 5), "quotation", 1, 10, 1)

    with_r = arbiter.check_availability(p, datetime(2024, 6, 1), datetime(2024, 6, 5))
    without_r = arbiter.check_availability(
        p, datetime(2024, 6, 1), datetime(2024, 6, 5), exclude_reservation_id=r.id
    )
    assert with_r.available_quantity == 2
    assert without_r.available_quantity == 5
    assert without_r.overlap_count == 0


def test_unknown_or_unrentable_product(arbiter, products):
    with pytest.raises(NotFoundError):
        arbiter.check_availability(9999, datetime(2024, 6, 1), datetime(2024, 6, 2))
    with pytest.raises(NotFoundError):
        arbiter.check_availability(products["OFF"], datetime(2024, 6, 1), datetime(2024, 6, 2))


def test_invalid_window_rejected(arbiter, products):
    with pytest.raises(ValidationError):
        arbiter.check_availability(products["P5"], datetime(2024, 6, 5), datetime(2024, 6, 5))


def test_calendar_reports_each_day(arbiter, products):
    p = products["P5"]
    arbiter.reserve(p, 2, datetime(2024, 6, 2), datetime(2024, 6, 4), "rental_order", 1, 10, 1)

    days = arbiter.availability.availability_calendar(p, datetime(2024, 6, 1), datetime(2024, 6, 5))
    assert [d.day.day for d in days] == [1, 2, 3, 4]
    assert [d.reserved_quantity for d in days] == [0, 2, 2, 0]
    assert [d.available_quantity for d in days] == [5, 3, 3, 5]
    assert all(d.is_available for d in days)


def test_next_available_window_skips_booked_days(arbiter, products):
    p = products["P1"]
    arbiter.reserve(p, 1, datetime(2024, 6, 1), datetime(2024, 6, 4), "rental_order", 1, 10, 1)

    window = arbiter.availability.next_available_window(
        p, 1, duration_days=2, search_from=datetime(2024, 6, 1)
    )
    assert window.start_date == datetime(2024, 6, 4)
    assert window.end_date == datetime(2024, 6, 6)
    assert window.available_quantity == 1

    assert arbiter.availability.next_available_window(p, 2, search_from=datetime(2024, 6, 1)) is None


def test_check_many_reports_items_that_do_not_fit(arbiter, products):
    batch = arbiter.availability.check_many(
        [
            {"product_id": products["P5"], "quantity": 2, "start_date": datetime(2024, 6, 1), "end_date": datetime(2024, 6, 3)},
            {"product_id": products["P1"], "quantity": 2, "start_date": datetime(2024, 6, 1), "end_date": datetime(2024, 6, 3)},
        ]
    )
    assert batch.available is False
    assert batch.unavailable_product_ids == [products["P1"]]
    assert batch.items[0].fits


def test_extension_check(arbiter, products):
    p = products["P1"]
    r = arbiter.reserve(p, 1, datetime(2024, 6, 1), datetime(2024, 6, 4), "rental_order", 1, 10, 1)
    arbiter.reserve(p, 1, datetime(2024, 6, 6), datetime(2024, 6, 8), "rental_order", 2, 11, 1)

    assert arbiter.availability.check_extension(r.id, datetime(2024, 6, 6)).possible is True
    blocked = arbiter.availability.check_extension(r.id, datetime(2024, 6, 7))
    assert blocked.possible is False
    assert blocked.result.available_quantity == 0

    with pytest.raises(ValidationError):
        arbiter.availability.check_extension(r.id, datetime(2024, 6, 3))


def test_utilization_counts_days_with_any_unit_held(arbiter, products):
    p = products["P5"]
    arbiter.reserve(p, 1, datetime(2024, 6, 2), datetime(2024, 6, 4), "rental_order", 1, 10, 1)
    arbiter.reserve(p, 2, datetime(2024, 6, 3), datetime(2024, 6, 5), "quotation", 2, 11, 1)

    usage = arbiter.availability.utilization(p, datetime(2024, 6, 1), datetime(2024, 6, 7))
    assert usage.total_days == 6
    assert usage.rented_days == 3
    assert usage.available_days == 3
    assert usage.utilization_rate == 50.0

    thirds = arbiter.availability.utilization(p, datetime(2024, 6, 4), datetime(2024, 6, 7))
    assert thirds.to_dict() == {
        "utilizationRate": 33.33,
        "totalDays": 3,
        "rentedDays": 1,
        "availableDays": 2,
    }


def test_extension_check_rejects_non_date_end(arbiter, products):
    r = arbiter.reserve(products["P5"], 1, datetime(2024, 6, 1), datetime(2024, 6, 4), "rental_order", 1, 10, 1)
    with pytest.raises(ValidationError):
        arbiter.availability.check_extension(r.id, "next tuesday")


@pytest.mark.parametrize(
    "item",
    [
        {"quantity": 1, "start_date": datetime(2024, 6, 1), "end_date": datetime(2024, 6, 3)},
        {"product_id": 1, "quantity": "lots", "start_date": datetime(2024, 6, 1), "end_date": datetime(2024, 6, 3)},
    ],
)
def test_check_many_rejects_malformed_items(arbiter, products, item):
    with pytest.raises(ValidationError):
        arbiter.availability.check_many([item])
