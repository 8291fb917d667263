"""
Income/expense rollups over fixed calendar windows.

Income is booking `payment_amount`, bucketed by `rental_date`. Expense is
repair `price_amount`, bucketed by `created_at` (when the work order was
opened, not when it was finished). Day, week, month and year boundaries are
taken in one configured zone (settings.REPORT_TIME_ZONE).

Read-only; no locking. Figures may trail in-flight engine writes.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS
from django.db.models import Count, DecimalField, Sum
from django.db.models.functions import Coalesce, ExtractMonth, TruncDate
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.overdue import overdue_bookings
from apps.core.errors import NotFoundError, ValidationError, storage_errors
from apps.fleet.models import Car, normalize_plate
from apps.maintenance.models import Repair

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def _money(field_name: str) -> Coalesce:
    return Coalesce(Sum(field_name), ZERO, output_field=DecimalField(max_digits=12, decimal_places=2))


@dataclass
class DayBucket:
    date: date
    bookings: int = 0
    income: Decimal = ZERO
    repairs: int = 0
    expenses: Decimal = ZERO


@dataclass
class MonthBucket:
    month: int
    month_name: str
    bookings: int = 0
    income: Decimal = ZERO
    repairs: int = 0
    expenses: Decimal = ZERO


@dataclass
class CarTypeStats:
    car_type: str
    count: int
    income: Decimal


@dataclass
class Totals:
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    total_bookings: int = 0
    total_repairs: int = 0

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expenses


@dataclass
class DailyReport:
    date: date
    bookings: list
    repairs: list
    totals: Totals

    @property
    def cars_rented(self) -> int:
        return self.totals.total_bookings

    @property
    def repairs_count(self) -> int:
        return self.totals.total_repairs


@dataclass
class WeeklyReport:
    week: int
    year: int
    start_date: date
    end_date: date
    totals: Totals
    daily_data: List[DayBucket] = field(default_factory=list)


@dataclass
class MonthlyReport:
    month: int
    year: int
    month_name: str
    totals: Totals
    car_type_stats: List[CarTypeStats] = field(default_factory=list)
    average_daily_income: Decimal = ZERO


@dataclass
class YearlyReport:
    year: int
    totals: Totals
    monthly_data: List[MonthBucket] = field(default_factory=list)
    average_monthly_income: Decimal = ZERO


@dataclass
class CarStats:
    totals: Totals
    completed_bookings: int
    utilization_rate: Decimal


@dataclass
class CarReport:
    car: Car
    bookings: list
    repairs: list
    stats: CarStats


@dataclass
class DashboardStats:
    total_cars: int
    available_cars: int
    rented_cars: int
    cars_in_repair: int
    total_bookings: int
    pending_bookings: int
    approved_bookings: int
    canceled_bookings: int
    completed_bookings: int
    repairs_in_progress: int
    overdue_bookings: int


class ReportAggregator:
    def __init__(self, using: str = DEFAULT_DB_ALIAS, time_zone: Optional[str] = None):
        self.using = using
        self.tz = ZoneInfo(time_zone or settings.REPORT_TIME_ZONE)

    # -- helpers ------------------------------------------------------------

    def today(self) -> date:
        return timezone.now().astimezone(self.tz).date()

    def _window(self, first: date, last: date) -> tuple[datetime, datetime]:
        """[first 00:00, day after last 00:00) in the report zone."""
        start = datetime.combine(first, time.min, tzinfo=self.tz)
        end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=self.tz)
        return start, end

    def _bookings_in(self, start: datetime, end: datetime):
        return Booking.objects.using(self.using).filter(rental_date__gte=start, rental_date__lt=end)

    def _repairs_in(self, start: datetime, end: datetime):
        return Repair.objects.using(self.using).filter(created_at__gte=start, created_at__lt=end)

    @staticmethod
    def _totals(bookings, repairs) -> Totals:
        b = bookings.aggregate(total=_money("payment_amount"), n=Count("id"))
        r = repairs.aggregate(total=_money("price_amount"), n=Count("id"))
        return Totals(
            total_income=b["total"],
            total_expenses=r["total"],
            total_bookings=b["n"],
            total_repairs=r["n"],
        )

    @staticmethod
    def _check_year(year: int) -> int:
        try:
            year = int(year)
        except (TypeError, ValueError):
            raise ValidationError("Year must be a number.", errors={"year": ["Enter a whole number."]}) from None
        if not 1 <= year <= 9999:
            raise ValidationError("Year out of range.", errors={"year": ["Year must be between 1 and 9999."]})
        return year

    @staticmethod
    def _check_month(month: int) -> int:
        try:
            month = int(month)
        except (TypeError, ValueError):
            raise ValidationError("Month must be a number.", errors={"month": ["Enter a whole number."]}) from None
        if not 1 <= month <= 12:
            raise ValidationError("Month out of range.", errors={"month": ["Month must be between 1 and 12."]})
        return month

    # -- reports ------------------------------------------------------------

    @storage_errors
    def daily(self, day: Optional[date] = None) -> DailyReport:
        day = day or self.today()
        start, end = self._window(day, day)
        bookings = self._bookings_in(start, end)
        repairs = self._repairs_in(start, end)

        return DailyReport(
            date=day,
            bookings=list(bookings.select_related("car").order_by("rental_date")),
            repairs=list(repairs.select_related("car").order_by("created_at")),
            totals=self._totals(bookings, repairs),
        )

    @storage_errors
    def weekly(self, week: Optional[int] = None, year: Optional[int] = None) -> WeeklyReport:
        """ISO weeks: Monday through Sunday."""
        if week is None or year is None:
            iso_year, iso_week, _ = self.today().isocalendar()
            week = iso_week if week is None else week
            year = iso_year if year is None else year
        year = self._check_year(year)
        try:
            first = date.fromisocalendar(year, int(week), 1)
        except (TypeError, ValueError):
            raise ValidationError("Invalid week.", errors={"week": [f"{year} has no ISO week {week}."]}) from None
        last = first + timedelta(days=6)
        start, end = self._window(first, last)
        bookings = self._bookings_in(start, end)
        repairs = self._repairs_in(start, end)

        buckets = {first + timedelta(days=i): DayBucket(date=first + timedelta(days=i)) for i in range(7)}

        booking_days = (
            bookings
            .annotate(d=TruncDate("rental_date", tzinfo=self.tz))
            .values("d")
            .annotate(n=Count("id"), total=_money("payment_amount"))
            .order_by("d")
        )
        for row in booking_days:
            bucket = buckets.get(row["d"])
            if bucket:
                bucket.bookings += row["n"]
                bucket.income += row["total"]

        repair_days = (
            repairs
            .annotate(d=TruncDate("created_at", tzinfo=self.tz))
            .values("d")
            .annotate(n=Count("id"), total=_money("price_amount"))
            .order_by("d")
        )
        for row in repair_days:
            bucket = buckets.get(row["d"])
            if bucket:
                bucket.repairs += row["n"]
                bucket.expenses += row["total"]

        return WeeklyReport(
            week=int(week),
            year=year,
            start_date=first,
            end_date=last,
            totals=self._totals(bookings, repairs),
            daily_data=list(buckets.values()),
        )

    @storage_errors
    def monthly(self, month: Optional[int] = None, year: Optional[int] = None) -> MonthlyReport:
        today = self.today()
        month = self._check_month(today.month if month is None else month)
        year = self._check_year(today.year if year is None else year)
        days_in_month = calendar.monthrange(year, month)[1]

        start, end = self._window(date(year, month, 1), date(year, month, days_in_month))
        bookings = self._bookings_in(start, end)
        repairs = self._repairs_in(start, end)
        totals = self._totals(bookings, repairs)

        by_type = (
            bookings
            .values("car_type")
            .annotate(n=Count("id"), total=_money("payment_amount"))
            .order_by("car_type")
        )
        car_type_stats = [CarTypeStats(car_type=row["car_type"], count=row["n"], income=row["total"]) for row in by_type]

        return MonthlyReport(
            month=month,
            year=year,
            month_name=calendar.month_name[month],
            totals=totals,
            car_type_stats=car_type_stats,
            average_daily_income=(totals.total_income / days_in_month).quantize(CENT),
        )

    @storage_errors
    def yearly(self, year: Optional[int] = None) -> YearlyReport:
        year = self._check_year(self.today().year if year is None else year)
        start, end = self._window(date(year, 1, 1), date(year, 12, 31))
        bookings = self._bookings_in(start, end)
        repairs = self._repairs_in(start, end)
        totals = self._totals(bookings, repairs)

        buckets = {m: MonthBucket(month=m, month_name=calendar.month_name[m]) for m in range(1, 13)}

        booking_months = (
            bookings
            .annotate(m=ExtractMonth("rental_date", tzinfo=self.tz))
            .values("m")
            .annotate(n=Count("id"), total=_money("payment_amount"))
            .order_by("m")
        )
        for row in booking_months:
            buckets[row["m"]].bookings += row["n"]
            buckets[row["m"]].income += row["total"]

        repair_months = (
            repairs
            .annotate(m=ExtractMonth("created_at", tzinfo=self.tz))
            .values("m")
            .annotate(n=Count("id"), total=_money("price_amount"))
            .order_by("m")
        )
        for row in repair_months:
            buckets[row["m"]].repairs += row["n"]
            buckets[row["m"]].expenses += row["total"]

        return YearlyReport(
            year=year,
            totals=totals,
            monthly_data=list(buckets.values()),
            average_monthly_income=(totals.total_income / 12).quantize(CENT),
        )

    @storage_errors
    def car(self, plate_number: str) -> CarReport:
        plate = normalize_plate(plate_number)
        car = Car.objects.using(self.using).filter(plate_number__iexact=plate).first() if plate else None
        if car is None:
            raise NotFoundError(f"No car with plate number {plate_number!r}.")

        bookings = Booking.objects.using(self.using).filter(car=car)
        repairs = Repair.objects.using(self.using).filter(car=car)
        totals = self._totals(bookings, repairs)
        completed = bookings.filter(status=Booking.STATUS_COMPLETED).count()

        if totals.total_bookings:
            utilization = (Decimal(completed * 100) / Decimal(totals.total_bookings)).quantize(CENT)
        else:
            utilization = Decimal("0")

        return CarReport(
            car=car,
            bookings=list(bookings.order_by("-created_at", "-pk")),
            repairs=list(repairs.order_by("-created_at", "-pk")),
            stats=CarStats(totals=totals, completed_bookings=completed, utilization_rate=utilization),
        )

    @storage_errors
    def dashboard(self, now: Optional[datetime] = None) -> DashboardStats:
        cars = {
            row["status"]: row["n"]
            for row in Car.objects.using(self.using).values("status").annotate(n=Count("id")).order_by()
        }
        bookings = {
            row["status"]: row["n"]
            for row in Booking.objects.using(self.using).values("status").annotate(n=Count("id")).order_by()
        }
        repairs_open = Repair.objects.using(self.using).filter(status__in=Repair.ACTIVE_STATUSES).count()

        return DashboardStats(
            total_cars=sum(cars.values()),
            available_cars=cars.get(Car.STATUS_AVAILABLE, 0),
            rented_cars=cars.get(Car.STATUS_RENTED, 0),
            cars_in_repair=cars.get(Car.STATUS_IN_REPAIR, 0),
            total_bookings=sum(bookings.values()),
            pending_bookings=bookings.get(Booking.STATUS_PENDING, 0),
            approved_bookings=bookings.get(Booking.STATUS_APPROVED, 0),
            canceled_bookings=bookings.get(Booking.STATUS_CANCELED, 0),
            completed_bookings=bookings.get(Booking.STATUS_COMPLETED, 0),
            repairs_in_progress=repairs_open,
            overdue_bookings=overdue_bookings(now, using=self.using).count(),
        )
