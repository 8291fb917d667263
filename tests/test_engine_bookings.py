from datetime import datetime
from decimal import Decimal

import pytest

from apps.bookings.models import Booking
from apps.core.errors import (
    ConflictError,
    InvalidStatusError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from apps.fleet.models import Car

from factories import UTC, booking_fields


def _status(car):
    car.refresh_from_db()
    return car.status


def test_create_booking_claims_car_and_snapshots_it(engine, make_car):
    car = make_car(car_type="suv")

    booking = engine.create_booking(car.pk, **booking_fields())

    assert booking.status == Booking.STATUS_PENDING
    assert booking.car_type == "suv"
    assert booking.plate_number == car.plate_number
    assert booking.remaining_balance == Decimal("200.00")
    assert booking.create_type == Booking.CREATE_NEW
    assert _status(car) == Car.STATUS_RENTED


def test_second_booking_on_rented_car_conflicts(engine, make_car):
    car = make_car()
    engine.create_booking(car.pk, **booking_fields())

    with pytest.raises(ConflictError):
        engine.create_booking(car.pk, **booking_fields(full_name="Late Comer"))

    assert Booking.objects.filter(car=car).count() == 1
    assert _status(car) == Car.STATUS_RENTED


def test_create_booking_for_unknown_car(engine, db):
    with pytest.raises(NotFoundError):
        engine.create_booking(999999, **booking_fields())
    with pytest.raises(NotFoundError):
        engine.create_booking("not-an-id", **booking_fields())


def test_create_booking_refuses_status_field(engine, make_car):
    car = make_car()

    with pytest.raises(ValidationError) as exc:
        engine.create_booking(car.pk, **booking_fields(status="approved"))

    assert "status" in exc.value.errors
    assert _status(car) == Car.STATUS_AVAILABLE


def test_invalid_booking_leaves_car_available(engine, make_car):
    car = make_car()
    bad = booking_fields(
        rental_date=datetime(2024, 1, 20, tzinfo=UTC),
        return_time=datetime(2024, 1, 18, tzinfo=UTC),
    )

    with pytest.raises(ValidationError) as exc:
        engine.create_booking(car.pk, **bad)

    assert "return_time" in exc.value.errors
    assert Booking.objects.count() == 0
    assert _status(car) == Car.STATUS_AVAILABLE


def test_partial_guarantor_is_rejected(engine, make_car):
    car = make_car()

    with pytest.raises(ValidationError) as exc:
        engine.create_booking(car.pk, **booking_fields(guarantor_phone=""))

    assert "guarantor_phone" in exc.value.errors
    assert _status(car) == Car.STATUS_AVAILABLE


def test_booking_lifecycle_end_to_end(engine, make_car):
    car = make_car()

    booking = engine.create_booking(car.pk, **booking_fields())
    assert booking.status == Booking.STATUS_PENDING
    assert _status(car) == Car.STATUS_RENTED

    booking = engine.transition_booking(booking.pk, Booking.STATUS_APPROVED)
    assert booking.status == Booking.STATUS_APPROVED
    assert _status(car) == Car.STATUS_RENTED

    booking = engine.transition_booking(booking.pk, Booking.STATUS_COMPLETED)
    assert booking.status == Booking.STATUS_COMPLETED
    assert _status(car) == Car.STATUS_AVAILABLE


def test_cancel_releases_car(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())

    engine.transition_booking(booking.pk, Booking.STATUS_CANCELED)

    assert _status(car) == Car.STATUS_AVAILABLE


def test_completion_only_releases_its_own_car(engine, make_car):
    first, second = make_car(), make_car()
    b1 = engine.create_booking(first.pk, **booking_fields())
    engine.create_booking(second.pk, **booking_fields(full_name="Other Customer"))
    engine.create_repair(make_car().pk, price_amount=Decimal("50"), comment="Brake pads")

    engine.transition_booking(b1.pk, Booking.STATUS_COMPLETED)

    assert _status(first) == Car.STATUS_AVAILABLE
    assert _status(second) == Car.STATUS_RENTED


def test_transition_to_unknown_status(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())

    with pytest.raises(InvalidStatusError):
        engine.transition_booking(booking.pk, "returned")

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_PENDING
    assert _status(car) == Car.STATUS_RENTED


def test_transition_unknown_booking(engine, db):
    with pytest.raises(NotFoundError):
        engine.transition_booking(424242, Booking.STATUS_APPROVED)


def test_terminal_booking_cannot_be_reopened(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())
    engine.transition_booking(booking.pk, Booking.STATUS_COMPLETED)

    with pytest.raises(InvalidStatusError):
        engine.transition_booking(booking.pk, Booking.STATUS_PENDING)

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_COMPLETED
    assert _status(car) == Car.STATUS_AVAILABLE


def test_repeated_transition_is_a_no_op(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())
    engine.transition_booking(booking.pk, Booking.STATUS_APPROVED)

    again = engine.transition_booking(booking.pk, Booking.STATUS_APPROVED)

    assert again.status == Booking.STATUS_APPROVED
    assert _status(car) == Car.STATUS_RENTED


def test_approved_back_to_pending_keeps_car_rented(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())
    engine.transition_booking(booking.pk, Booking.STATUS_APPROVED)

    engine.transition_booking(booking.pk, Booking.STATUS_PENDING)

    assert _status(car) == Car.STATUS_RENTED


def test_update_recomputes_remaining_balance(engine, make_car):
    booking = engine.create_booking(make_car().pk, **booking_fields())

    booking = engine.update_booking(booking.pk, {"payment_amount": Decimal("300.00")})
    assert booking.remaining_balance == Decimal("0.00")

    booking = engine.update_booking(booking.pk, {"total_price": Decimal("450.00")})
    booking.refresh_from_db()
    assert booking.remaining_balance == Decimal("150.00")


def test_update_rejects_status_and_snapshot_fields(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())

    with pytest.raises(ValidationError):
        engine.update_booking(booking.pk, {"status": Booking.STATUS_COMPLETED})
    with pytest.raises(ValidationError):
        engine.update_booking(booking.pk, {"plate_number": "FAKE 1"})

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_PENDING
    assert booking.plate_number == car.plate_number
    assert _status(car) == Car.STATUS_RENTED


def test_non_pending_booking_needs_elevated_caller(engine, make_car):
    booking = engine.create_booking(make_car().pk, **booking_fields())
    engine.transition_booking(booking.pk, Booking.STATUS_APPROVED)

    with pytest.raises(PermissionDeniedError):
        engine.update_booking(booking.pk, {"phone": "+254711111111"})

    booking = engine.update_booking(booking.pk, {"phone": "+254711111111"}, elevated=True)
    assert booking.phone == "+254711111111"
    assert booking.status == Booking.STATUS_APPROVED


def test_update_unknown_booking(engine, db):
    with pytest.raises(NotFoundError):
        engine.update_booking(5150, {"phone": "1"})


def test_delete_active_booking_releases_car(engine, make_car):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())

    engine.delete_booking(booking.pk)

    assert not Booking.objects.filter(pk=booking.pk).exists()
    assert _status(car) == Car.STATUS_AVAILABLE


def test_delete_finished_booking_keeps_current_occupant(engine, make_car):
    car = make_car()
    old = engine.create_booking(car.pk, **booking_fields())
    engine.transition_booking(old.pk, Booking.STATUS_COMPLETED)
    engine.create_booking(car.pk, **booking_fields(full_name="Next Customer", create_type="renewal"))

    engine.delete_booking(old.pk)

    assert _status(car) == Car.STATUS_RENTED
    assert Booking.objects.filter(car=car).count() == 1


def test_reconcile_repairs_drifted_status(engine, make_car):
    car = make_car()
    engine.create_booking(car.pk, **booking_fields())
    idle = make_car()
    Car.objects.filter(pk=car.pk).update(status=Car.STATUS_AVAILABLE)

    changed = engine.reconcile()

    assert [c.pk for c in changed] == [car.pk]
    assert _status(car) == Car.STATUS_RENTED
    assert _status(idle) == Car.STATUS_AVAILABLE


def test_stale_available_flag_does_not_allow_double_occupancy(engine, make_car):
    car = make_car()
    engine.create_booking(car.pk, **booking_fields())
    Car.objects.filter(pk=car.pk).update(status=Car.STATUS_AVAILABLE)

    with pytest.raises(ConflictError):
        engine.create_booking(car.pk, **booking_fields(full_name="Second"))

    assert Booking.objects.filter(car=car).count() == 1


@pytest.mark.parametrize("bad_status", [["approved"], {"status": "approved"}, None, 3])
def test_non_string_status_is_invalid(engine, make_car, bad_status):
    car = make_car()
    booking = engine.create_booking(car.pk, **booking_fields())

    with pytest.raises(InvalidStatusError):
        engine.transition_booking(booking.pk, bad_status)

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_PENDING
