from datetime import datetime
from decimal import Decimal

import pytest

from apps.bookings.models import Booking
from apps.core.errors import ConflictError, InvalidStatusError, NotFoundError, ValidationError
from apps.fleet.models import Car
from apps.maintenance.models import Repair

from factories import UTC, booking_fields


def _status(car):
    car.refresh_from_db()
    return car.status


def _open_repair(engine, car, **fields):
    fields.setdefault("price_amount", Decimal("120.00"))
    fields.setdefault("comment", "Replace brake pads")
    return engine.create_repair(car.pk, **fields)


def test_create_repair_sends_car_to_workshop(engine, make_car):
    car = make_car(name="Mazda Demio")

    repair = _open_repair(engine, car)

    assert repair.status == Repair.STATUS_PENDING
    assert repair.car_name == "Mazda Demio"
    assert repair.plate_number == car.plate_number
    assert repair.start_date is not None
    assert repair.completed_date is None
    assert _status(car) == Car.STATUS_IN_REPAIR


def test_explicit_start_date_is_kept(engine, make_car):
    start = datetime(2024, 3, 4, 8, 30, tzinfo=UTC)

    repair = _open_repair(engine, make_car(), start_date=start)

    assert repair.start_date == start


def test_repair_on_rented_car_conflicts(engine, make_car):
    car = make_car()
    engine.create_booking(car.pk, **booking_fields())

    with pytest.raises(ConflictError):
        _open_repair(engine, car)

    assert Repair.objects.count() == 0
    assert _status(car) == Car.STATUS_RENTED


def test_booking_on_car_in_repair_conflicts(engine, make_car):
    car = make_car()
    _open_repair(engine, car)

    with pytest.raises(ConflictError):
        engine.create_booking(car.pk, **booking_fields())

    assert Booking.objects.count() == 0
    assert _status(car) == Car.STATUS_IN_REPAIR


def test_repair_needs_a_comment(engine, make_car):
    car = make_car()

    with pytest.raises(ValidationError) as exc:
        _open_repair(engine, car, comment="")

    assert "comment" in exc.value.errors
    assert _status(car) == Car.STATUS_AVAILABLE


def test_negative_price_is_rejected(engine, make_car):
    car = make_car()

    with pytest.raises(ValidationError):
        _open_repair(engine, car, price_amount=Decimal("-1.00"))

    assert _status(car) == Car.STATUS_AVAILABLE


def test_repair_unknown_car(engine, db):
    with pytest.raises(NotFoundError):
        engine.create_repair(31337, price_amount=Decimal("1"), comment="x")


def test_repair_lifecycle_releases_car(engine, make_car):
    car = make_car()
    repair = _open_repair(engine, car)

    repair = engine.transition_repair(repair.pk, Repair.STATUS_IN_PROGRESS)
    assert _status(car) == Car.STATUS_IN_REPAIR

    repair = engine.transition_repair(repair.pk, Repair.STATUS_COMPLETED)
    assert repair.completed_date is not None
    assert _status(car) == Car.STATUS_AVAILABLE

    # the car can be rented again
    engine.create_booking(car.pk, **booking_fields())
    assert _status(car) == Car.STATUS_RENTED


def test_completed_date_is_stamped_once(engine, make_car):
    repair = _open_repair(engine, make_car())
    repair = engine.transition_repair(repair.pk, Repair.STATUS_COMPLETED)
    stamped = repair.completed_date

    engine.transition_repair(repair.pk, Repair.STATUS_COMPLETED)
    engine.update_repair(repair.pk, {"comment": "Replaced pads and discs"})

    repair.refresh_from_db()
    assert repair.completed_date == stamped


def test_completed_repair_cannot_be_reopened(engine, make_car):
    car = make_car()
    repair = _open_repair(engine, car)
    engine.transition_repair(repair.pk, Repair.STATUS_COMPLETED)

    with pytest.raises(InvalidStatusError):
        engine.transition_repair(repair.pk, Repair.STATUS_IN_PROGRESS)

    assert _status(car) == Car.STATUS_AVAILABLE


def test_unknown_repair_status(engine, make_car):
    repair = _open_repair(engine, make_car())

    with pytest.raises(InvalidStatusError):
        engine.transition_repair(repair.pk, "approved")


def test_update_repair_fields(engine, make_car):
    repair = _open_repair(engine, make_car())

    repair = engine.update_repair(repair.pk, {"price_amount": Decimal("180.50")})

    repair.refresh_from_db()
    assert repair.price_amount == Decimal("180.50")
    assert repair.status == Repair.STATUS_PENDING


def test_update_repair_rejects_status(engine, make_car):
    repair = _open_repair(engine, make_car())

    with pytest.raises(ValidationError):
        engine.update_repair(repair.pk, {"status": Repair.STATUS_COMPLETED})
    with pytest.raises(ValidationError):
        engine.update_repair(repair.pk, {"car_name": "Something else"})


def test_delete_active_repair_releases_car(engine, make_car):
    car = make_car()
    repair = _open_repair(engine, car)

    engine.delete_repair(repair.pk)

    assert not Repair.objects.filter(pk=repair.pk).exists()
    assert _status(car) == Car.STATUS_AVAILABLE


def test_delete_unknown_repair(engine, db):
    with pytest.raises(NotFoundError):
        engine.delete_repair(8080)


def test_reconcile_prefers_repair_over_booking(engine, make_car):
    car = make_car()
    engine.create_booking(car.pk, **booking_fields())
    # an inconsistent store: an active repair beside an active booking
    Repair.objects.create(car=car, car_name=car.name, plate_number=car.plate_number,
                          price_amount=Decimal("10"), comment="Imported")

    changed = engine.reconcile([car.pk])

    assert [c.pk for c in changed] == [car.pk]
    assert _status(car) == Car.STATUS_IN_REPAIR


def test_non_string_repair_status_is_invalid(engine, make_car):
    repair = _open_repair(engine, make_car())

    with pytest.raises(InvalidStatusError):
        engine.transition_repair(repair.pk, ["completed"])
