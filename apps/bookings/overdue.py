from __future__ import annotations

from datetime import datetime

from django.db.models import QuerySet
from django.utils import timezone

from .models import Booking


def is_overdue(booking: Booking, now: datetime | None = None) -> bool:
    """
    A booking is overdue while it is still open (not completed/canceled) and
    the return time has passed. Always computed at read time.
    """
    if booking.status in Booking.TERMINAL_STATUSES:
        return False
    now = now or timezone.now()
    return now > booking.return_time


def current_booking(car, using: str | None = None) -> Booking | None:
    qs = Booking.objects.filter(car=car, status__in=Booking.ACTIVE_STATUSES)
    if using:
        qs = qs.using(using)
    return qs.order_by("-created_at").first()


def car_is_overdue(car, now: datetime | None = None, booking: Booking | None = None) -> bool:
    """
    A rented car is overdue when its active booking is. Pass `booking` when
    the caller already fetched the current booking.
    """
    if car.status != car.STATUS_RENTED:
        return False
    booking = booking or current_booking(car, using=car._state.db)
    return booking is not None and is_overdue(booking, now)


def overdue_bookings(now: datetime | None = None, using: str | None = None) -> QuerySet:
    now = now or timezone.now()
    qs = Booking.objects.filter(status__in=Booking.ACTIVE_STATUSES, return_time__lt=now)
    if using:
        qs = qs.using(using)
    return qs
