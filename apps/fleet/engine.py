"""
Fleet state engine.

Keeps every Car's cached `status` consistent with the booking or repair that
currently occupies it. A car is occupied by at most one active record:

    active Repair   -> in_repair
    active Booking  -> rented
    neither         -> available

Each operation runs in a single transaction on the engine's database alias.
Creation claims the car with a conditional UPDATE keyed on
status=available, so of two concurrent claims only one matches a row.
Transitions and deletes lock the car row first, then the record row, and
recompute the car status from the active occupants before commit.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils import timezone

from apps.bookings.models import Booking
from apps.core.errors import (
    ConflictError,
    InvalidStatusError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    storage_errors,
)
from apps.maintenance.models import Repair

from .models import Car

logger = logging.getLogger(__name__)


BOOKING_FIELDS = frozenset({
    "full_name",
    "phone",
    "residential_address",
    "id_passport_number",
    "guarantor_name",
    "guarantor_id_passport_number",
    "guarantor_phone",
    "rent_type",
    "rental_period",
    "rental_date",
    "return_time",
    "total_price",
    "payment_amount",
    "create_type",
})

REPAIR_FIELDS = frozenset({"price_amount", "comment", "start_date"})


def _coerce_id(value, label: str) -> int:
    if isinstance(value, (Car, Booking, Repair)):
        return value.pk
    try:
        return int(value)
    except (TypeError, ValueError):
        raise NotFoundError(f"{label} {value!r} not found.") from None


def _check_fields(changes: dict, allowed: frozenset, label: str) -> None:
    if "status" in changes:
        raise ValidationError(
            "Status can only be changed through a status transition.",
            errors={"status": ["Use the status transition operation."]},
        )
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationError(
            f"Unsupported {label} fields: {', '.join(unknown)}.",
            errors={name: ["This field cannot be set."] for name in unknown},
        )


def _full_clean(obj) -> None:
    try:
        obj.full_clean()
    except DjangoValidationError as exc:
        raise ValidationError.from_django(exc) from exc


class FleetStateEngine:
    """
    Booking and repair lifecycle operations with their car-status side effects.

    `using` selects the database alias every query runs against, so separate
    engines can work on separate stores.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    # -- store access -------------------------------------------------------

    def _cars(self):
        return Car.objects.using(self.using)

    def _bookings(self):
        return Booking.objects.using(self.using)

    def _repairs(self):
        return Repair.objects.using(self.using)

    def _atomic(self):
        return transaction.atomic(using=self.using)

    def _claim_car(self, car_id: int, status: str) -> Car:
        """Flip an available car to `status` in one conditional UPDATE."""
        claimed = (
            self._cars()
            .filter(pk=car_id, status=Car.STATUS_AVAILABLE)
            .update(status=status, updated_at=timezone.now())
        )
        if not claimed:
            current = self._cars().filter(pk=car_id).values_list("status", flat=True).first()
            if current is None:
                raise NotFoundError(f"Car {car_id} not found.")
            raise ConflictError(f"Car {car_id} is not available (currently {current}).")

        car = self._cars().get(pk=car_id)
        if self._occupant_counts(car) != (0, 0):
            # The cached status said available but an active record exists.
            raise ConflictError(f"Car {car.plate_number} already has an active booking or repair.")
        return car

    def _lock_car(self, car_id: int) -> Car:
        car = self._cars().select_for_update().filter(pk=car_id).first()
        if car is None:
            raise NotFoundError(f"Car {car_id} not found.")
        return car

    def _lock_record(self, manager, record_id: int, label: str):
        """Lock the owning car, then the record itself."""
        car_id = manager.filter(pk=record_id).values_list("car_id", flat=True).first()
        if car_id is None:
            raise NotFoundError(f"{label} {record_id} not found.")
        car = self._lock_car(car_id)
        record = manager.select_for_update().filter(pk=record_id).first()
        if record is None:
            raise NotFoundError(f"{label} {record_id} not found.")
        return car, record

    def _occupant_counts(self, car: Car) -> tuple[int, int]:
        repairs = self._repairs().filter(car=car, status__in=Repair.ACTIVE_STATUSES).count()
        bookings = self._bookings().filter(car=car, status__in=Booking.ACTIVE_STATUSES).count()
        return repairs, bookings

    def derive_status(self, car: Car) -> str:
        repairs, bookings = self._occupant_counts(car)
        if repairs:
            return Car.STATUS_IN_REPAIR
        if bookings:
            return Car.STATUS_RENTED
        return Car.STATUS_AVAILABLE

    def _sync_car(self, car: Car) -> bool:
        """Write the derived status back to the car row. Returns True on change."""
        status = self.derive_status(car)
        if status == car.status:
            return False
        self._cars().filter(pk=car.pk).update(status=status, updated_at=timezone.now())
        logger.info("Car %s status %s -> %s", car.plate_number, car.status, status)
        car.status = status
        return True

    # -- bookings -----------------------------------------------------------

    @storage_errors
    def create_booking(self, car_id, *, created_by=None, **fields) -> Booking:
        _check_fields(fields, BOOKING_FIELDS, "booking")
        car_id = _coerce_id(car_id, "Car")

        with self._atomic():
            car = self._claim_car(car_id, Car.STATUS_RENTED)
            booking = Booking(
                car=car,
                car_type=car.car_type,
                plate_number=car.plate_number,
                status=Booking.STATUS_PENDING,
                created_by=created_by,
                **fields,
            )
            _full_clean(booking)
            booking.save(using=self.using)

        logger.info("Booking %s created for car %s", booking.pk, car.plate_number)
        return booking

    @storage_errors
    def transition_booking(self, booking_id, new_status: str) -> Booking:
        if not isinstance(new_status, str) or new_status not in dict(Booking.STATUS_CHOICES):
            raise InvalidStatusError(f"Invalid booking status: {new_status!r}.")
        booking_id = _coerce_id(booking_id, "Booking")

        with self._atomic():
            car, booking = self._lock_record(self._bookings(), booking_id, "Booking")
            old_status = booking.status
            if old_status == new_status:
                return booking
            if old_status in Booking.TERMINAL_STATUSES:
                raise InvalidStatusError(
                    f"Booking {booking.pk} is {old_status} and cannot move to {new_status}."
                )
            booking.status = new_status
            booking.save(using=self.using)
            # completed/canceled release the car, pending<->approved keep it rented
            self._sync_car(car)

        logger.info("Booking %s %s -> %s", booking.pk, old_status, new_status)
        return booking

    @storage_errors
    def update_booking(self, booking_id, changes: dict, *, elevated: bool = False) -> Booking:
        """
        Correct booking fields. Non-pending bookings need `elevated`
        (admin) rights; status never changes here.
        """
        _check_fields(changes, BOOKING_FIELDS, "booking")
        booking_id = _coerce_id(booking_id, "Booking")

        with self._atomic():
            booking = self._bookings().select_for_update().filter(pk=booking_id).first()
            if booking is None:
                raise NotFoundError(f"Booking {booking_id} not found.")
            if booking.status != Booking.STATUS_PENDING and not elevated:
                raise PermissionDeniedError(
                    f"Booking {booking.pk} is {booking.status}; only pending bookings can be corrected."
                )
            if not changes:
                return booking
            for name, value in changes.items():
                setattr(booking, name, value)
            _full_clean(booking)
            booking.save(using=self.using)

        logger.info("Booking %s corrected (%s)", booking.pk, ", ".join(sorted(changes)))
        return booking

    @storage_errors
    def delete_booking(self, booking_id) -> None:
        booking_id = _coerce_id(booking_id, "Booking")

        with self._atomic():
            car, booking = self._lock_record(self._bookings(), booking_id, "Booking")
            was_active = booking.is_active
            booking.delete()
            self._sync_car(car)

        logger.info("Booking %s deleted (active=%s)", booking_id, was_active)

    # -- repairs ------------------------------------------------------------

    @storage_errors
    def create_repair(self, car_id, *, created_by=None, **fields) -> Repair:
        _check_fields(fields, REPAIR_FIELDS, "repair")
        if fields.get("start_date") is None:
            fields.pop("start_date", None)
        car_id = _coerce_id(car_id, "Car")

        with self._atomic():
            car = self._claim_car(car_id, Car.STATUS_IN_REPAIR)
            repair = Repair(
                car=car,
                car_name=car.name,
                plate_number=car.plate_number,
                status=Repair.STATUS_PENDING,
                created_by=created_by,
                **fields,
            )
            _full_clean(repair)
            repair.save(using=self.using)

        logger.info("Repair %s opened for car %s", repair.pk, car.plate_number)
        return repair

    @storage_errors
    def transition_repair(self, repair_id, new_status: str) -> Repair:
        if not isinstance(new_status, str) or new_status not in dict(Repair.STATUS_CHOICES):
            raise InvalidStatusError(f"Invalid repair status: {new_status!r}.")
        repair_id = _coerce_id(repair_id, "Repair")

        with self._atomic():
            car, repair = self._lock_record(self._repairs(), repair_id, "Repair")
            old_status = repair.status
            if old_status == new_status:
                return repair
            if old_status == Repair.STATUS_COMPLETED:
                raise InvalidStatusError(f"Repair {repair.pk} is completed and cannot move to {new_status}.")
            repair.status = new_status
            repair.save(using=self.using)
            self._sync_car(car)

        logger.info("Repair %s %s -> %s", repair.pk, old_status, new_status)
        return repair

    @storage_errors
    def update_repair(self, repair_id, changes: dict) -> Repair:
        _check_fields(changes, REPAIR_FIELDS, "repair")
        repair_id = _coerce_id(repair_id, "Repair")

        with self._atomic():
            repair = self._repairs().select_for_update().filter(pk=repair_id).first()
            if repair is None:
                raise NotFoundError(f"Repair {repair_id} not found.")
            if not changes:
                return repair
            for name, value in changes.items():
                setattr(repair, name, value)
            _full_clean(repair)
            repair.save(using=self.using)

        logger.info("Repair %s corrected (%s)", repair.pk, ", ".join(sorted(changes)))
        return repair

    @storage_errors
    def delete_repair(self, repair_id) -> None:
        repair_id = _coerce_id(repair_id, "Repair")

        with self._atomic():
            car, repair = self._lock_record(self._repairs(), repair_id, "Repair")
            was_active = repair.is_active
            repair.delete()
            self._sync_car(car)

        logger.info("Repair %s deleted (active=%s)", repair_id, was_active)

    # -- maintenance ---------------------------------------------------------

    @storage_errors
    def reconcile(self, car_ids=None) -> list[Car]:
        """
        Recompute cached statuses from active occupants. Returns the cars
        whose stored status was wrong.
        """
        qs = self._cars().order_by("pk")
        if car_ids is not None:
            qs = qs.filter(pk__in=list(car_ids))

        changed: list[Car] = []
        for car_id in qs.values_list("pk", flat=True):
            with self._atomic():
                car = self._lock_car(car_id)
                repairs, bookings = self._occupant_counts(car)
                if repairs + bookings > 1:
                    logger.error(
                        "Car %s has %d active repairs and %d active bookings",
                        car.plate_number, repairs, bookings,
                    )
                before = car.status
                if self._sync_car(car):
                    logger.warning("Car %s cached status drifted: %s -> %s", car.plate_number, before, car.status)
                    changed.append(car)
        return changed
