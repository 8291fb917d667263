from django.contrib.auth.decorators import login_required
from django.db.models import Prefetch, Q
from django.forms import modelform_factory
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.overdue import car_is_overdue, current_booking
from apps.core.errors import NotFoundError
from apps.core.http import api_view, form_values, json_response, read_json, staff_required, validated
from apps.maintenance.models import Repair

from . import services
from .forms import CarForm
from .models import Car


def serialize_car(car: Car, now=None, with_occupant: bool = False) -> dict:
    data = {
        "id": car.pk,
        "name": car.name,
        "plate_number": car.plate_number,
        "car_type": car.car_type,
        "model": car.model,
        "status": car.status,
        "created_at": car.created_at,
        "updated_at": car.updated_at,
    }
    if with_occupant:
        now = now or timezone.now()
        if hasattr(car, "active_bookings"):
            booking = next(iter(car.active_bookings), None)
            repair = next(iter(car.active_repairs), None)
        else:
            booking = current_booking(car, using=car._state.db)
            repair = (
                Repair.objects.using(car._state.db)
                .filter(car=car, status__in=Repair.ACTIVE_STATUSES)
                .order_by("-created_at")
                .first()
            )
        data["current_booking"] = (
            {"id": booking.pk, "full_name": booking.full_name, "return_time": booking.return_time, "status": booking.status}
            if booking else None
        )
        data["current_repair"] = {"id": repair.pk, "status": repair.status} if repair else None
        data["is_overdue"] = car_is_overdue(car, now, booking=booking) if booking else False
    return data


def _get_car(pk: int) -> Car:
    car = Car.objects.filter(pk=pk).first()
    if car is None:
        raise NotFoundError(f"Car {pk} not found.")
    return car


@login_required
@api_view(["GET", "POST"])
def car_collection(request):
    if request.method == "POST":
        return car_create(request)

    qs = Car.objects.all().order_by("-created_at").prefetch_related(
        Prefetch(
            "bookings",
            queryset=Booking.objects.filter(status__in=Booking.ACTIVE_STATUSES).order_by("-created_at"),
            to_attr="active_bookings",
        ),
        Prefetch(
            "repairs",
            queryset=Repair.objects.filter(status__in=Repair.ACTIVE_STATUSES).order_by("-created_at"),
            to_attr="active_repairs",
        ),
    )

    status = (request.GET.get("status") or "").strip()
    car_type = (request.GET.get("car_type") or "").strip()
    q = (request.GET.get("q") or "").strip()

    if status:
        qs = qs.filter(status=status)
    if car_type:
        qs = qs.filter(car_type__icontains=car_type)
    if q:
        qs = qs.filter(
            Q(name__icontains=q) |
            Q(plate_number__icontains=q) |
            Q(model__icontains=q)
        )

    now = timezone.now()
    return json_response([serialize_car(c, now, with_occupant=True) for c in qs])


@staff_required
def car_create(request):
    form = validated(CarForm(read_json(request)))
    car = services.register_car(**form.cleaned_data)
    return json_response(serialize_car(car, with_occupant=True), status=201)


@login_required
@api_view(["GET"])
def car_available(request):
    return json_response([serialize_car(c) for c in services.available_cars()])


@login_required
@api_view(["GET", "PUT", "PATCH", "DELETE"])
def car_detail(request, pk: int):
    if request.method in ("PUT", "PATCH"):
        return car_update(request, pk)
    if request.method == "DELETE":
        return car_delete(request, pk)
    return json_response(serialize_car(_get_car(pk), with_occupant=True))


@staff_required
def car_update(request, pk: int):
    data = read_json(request)
    changes = {k: v for k, v in data.items() if k not in CarForm.Meta.fields}
    fields = [name for name in CarForm.Meta.fields if name in data]
    if fields:
        form = validated(modelform_factory(Car, form=CarForm, fields=fields)(data))
        changes.update(form_values(form, data))
    car = services.update_car(pk, changes)
    return json_response(serialize_car(car, with_occupant=True))


@staff_required
def car_delete(request, pk: int):
    services.delete_car(pk)
    return json_response({"message": "Car deleted."})
