from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.db.models import ProtectedError

from apps.core.errors import ConflictError, NotFoundError, ValidationError, storage_errors

from .models import Car, normalize_plate

logger = logging.getLogger(__name__)

CAR_FIELDS = frozenset({"name", "plate_number", "car_type", "model"})


def _plate_taken(plate: str, using: str, exclude_pk=None) -> bool:
    qs = Car.objects.using(using).filter(plate_number=plate)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


def _save_car(car: Car, using: str) -> Car:
    try:
        car.full_clean(validate_unique=False)
    except DjangoValidationError as exc:
        raise ValidationError.from_django(exc) from exc

    if _plate_taken(car.plate_number, using, exclude_pk=car.pk):
        raise ConflictError(f"A car with plate number {car.plate_number} already exists.")

    try:
        with transaction.atomic(using=using):
            car.save(using=using)
    except IntegrityError as exc:
        # lost a race against another registration of the same plate
        raise ConflictError(f"A car with plate number {car.plate_number} already exists.") from exc
    return car


@storage_errors
def register_car(*, name: str, plate_number: str, car_type: str, model: str, using: str = DEFAULT_DB_ALIAS) -> Car:
    car = Car(
        name=(name or "").strip(),
        plate_number=normalize_plate(plate_number),
        car_type=(car_type or "").strip(),
        model=(model or "").strip(),
        status=Car.STATUS_AVAILABLE,
    )
    _save_car(car, using)
    logger.info("Car %s registered", car.plate_number)
    return car


@storage_errors
def update_car(car_id, changes: dict, using: str = DEFAULT_DB_ALIAS) -> Car:
    """
    Edit descriptive fields. Status belongs to the fleet engine, and existing
    bookings/repairs keep their snapshot of the old values.
    """
    if "status" in changes:
        raise ValidationError(
            "Car status is derived from its bookings and repairs.",
            errors={"status": ["This field cannot be set."]},
        )
    unknown = sorted(set(changes) - CAR_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unsupported car fields: {', '.join(unknown)}.",
            errors={name: ["This field cannot be set."] for name in unknown},
        )

    car = Car.objects.using(using).filter(pk=car_id).first()
    if car is None:
        raise NotFoundError(f"Car {car_id} not found.")

    for name, value in changes.items():
        value = (value or "").strip()
        if name == "plate_number":
            value = normalize_plate(value)
        setattr(car, name, value)

    _save_car(car, using)
    logger.info("Car %s updated (%s)", car.plate_number, ", ".join(sorted(changes)))
    return car


@storage_errors
def delete_car(car_id, using: str = DEFAULT_DB_ALIAS) -> None:
    """
    Cars with any booking or repair history are kept; the history would
    otherwise lose its car reference.
    """
    with transaction.atomic(using=using):
        car = Car.objects.using(using).select_for_update().filter(pk=car_id).first()
        if car is None:
            raise NotFoundError(f"Car {car_id} not found.")
        if car.bookings.exists() or car.repairs.exists():
            raise ConflictError(f"Car {car.plate_number} has bookings or repairs and cannot be deleted.")
        try:
            car.delete()
        except ProtectedError as exc:
            raise ConflictError(f"Car {car.plate_number} is still referenced.") from exc

    logger.info("Car %s deleted", car.plate_number)


def available_cars(using: str = DEFAULT_DB_ALIAS):
    return Car.objects.using(using).filter(status=Car.STATUS_AVAILABLE).order_by("name")
