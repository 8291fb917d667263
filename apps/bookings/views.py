from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.forms import modelform_factory
from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.core.errors import NotFoundError, ValidationError
from apps.core.http import api_view, form_values, json_response, read_json, staff_required, validated
from apps.fleet.engine import FleetStateEngine

from .forms import BookingForm, flatten_guarantor
from .models import Booking
from .overdue import is_overdue


def serialize_booking(b: Booking, now=None) -> dict:
    return {
        "id": b.pk,
        "car": b.car_id,
        "car_type": b.car_type,
        "plate_number": b.plate_number,
        "full_name": b.full_name,
        "phone": b.phone,
        "residential_address": b.residential_address,
        "id_passport_number": b.id_passport_number,
        "guarantor": {
            "name": b.guarantor_name,
            "id_passport_number": b.guarantor_id_passport_number,
            "phone": b.guarantor_phone,
        },
        "rent_type": b.rent_type,
        "rental_period": b.rental_period,
        "rental_date": b.rental_date,
        "return_time": b.return_time,
        "total_price": b.total_price,
        "payment_amount": b.payment_amount,
        "remaining_balance": b.remaining_balance,
        "status": b.status,
        "create_type": b.create_type,
        "is_overdue": is_overdue(b, now),
        "created_by": b.created_by_id,
        "created_at": b.created_at,
        "updated_at": b.updated_at,
    }


def _date_param(request, name):
    raw = (request.GET.get(name) or "").strip()
    if not raw:
        return None
    value = parse_date(raw)
    if value is None:
        raise ValidationError(f"{name} must be a date.", errors={name: ["Use YYYY-MM-DD."]})
    return value


@login_required
@api_view(["GET", "POST"])
def booking_collection(request):
    if request.method == "POST":
        return booking_create(request)

    qs = Booking.objects.all().order_by("-created_at")

    status = (request.GET.get("status") or "").strip()
    q = (request.GET.get("q") or "").strip()
    start = _date_param(request, "start")
    end = _date_param(request, "end")

    if status:
        qs = qs.filter(status=status)
    if q:
        qs = qs.filter(
            Q(full_name__icontains=q) |
            Q(phone__icontains=q) |
            Q(plate_number__icontains=q) |
            Q(car_type__icontains=q)
        )
    if start and end:
        qs = qs.filter(rental_date__date__gte=start, rental_date__date__lte=end)

    now = timezone.now()
    return json_response([serialize_booking(b, now) for b in qs])


def booking_create(request):
    data = flatten_guarantor(read_json(request))
    car_id = data.get("car")
    if car_id in (None, ""):
        raise ValidationError("Car selection is required.", errors={"car": ["This field is required."]})

    form = validated(BookingForm(data))
    booking = FleetStateEngine().create_booking(car_id, created_by=request.user, **form.cleaned_data)
    return json_response(serialize_booking(booking), status=201)


@login_required
@api_view(["GET", "PUT", "PATCH", "DELETE"])
def booking_detail(request, pk: int):
    if request.method in ("PUT", "PATCH"):
        return booking_update(request, pk)
    if request.method == "DELETE":
        return booking_delete(request, pk)

    booking = Booking.objects.filter(pk=pk).first()
    if booking is None:
        raise NotFoundError(f"Booking {pk} not found.")
    return json_response(serialize_booking(booking))


def booking_update(request, pk: int):
    data = flatten_guarantor(read_json(request))
    # Unknown keys (status, car, ...) go through so the engine rejects them
    changes = {k: v for k, v in data.items() if k not in BookingForm.Meta.fields}
    fields = [name for name in BookingForm.Meta.fields if name in data]
    if fields:
        form = validated(modelform_factory(Booking, form=BookingForm, fields=fields)(data))
        changes.update(form_values(form, data))

    booking = FleetStateEngine().update_booking(pk, changes, elevated=request.user.is_staff)
    return json_response(serialize_booking(booking))


@staff_required
def booking_delete(request, pk: int):
    FleetStateEngine().delete_booking(pk)
    return json_response({"message": "Booking deleted."})


@login_required
@api_view(["POST", "PATCH"])
@staff_required
def booking_status(request, pk: int):
    data = read_json(request)
    booking = FleetStateEngine().transition_booking(pk, data.get("status"))
    return json_response(serialize_booking(booking))
