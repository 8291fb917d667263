from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.forms import modelform_factory

from apps.core.errors import NotFoundError, ValidationError
from apps.core.http import api_view, form_values, json_response, read_json, staff_required, validated
from apps.fleet.engine import FleetStateEngine

from .forms import RepairForm
from .models import Repair


def serialize_repair(r: Repair) -> dict:
    return {
        "id": r.pk,
        "car": r.car_id,
        "car_name": r.car_name,
        "plate_number": r.plate_number,
        "price_amount": r.price_amount,
        "comment": r.comment,
        "status": r.status,
        "start_date": r.start_date,
        "completed_date": r.completed_date,
        "created_by": r.created_by_id,
        "created_at": r.created_at,
        "updated_at": r.updated_at,
    }


@login_required
@api_view(["GET", "POST"])
def repair_collection(request):
    if request.method == "POST":
        return repair_create(request)

    qs = Repair.objects.all().order_by("-created_at")

    status = (request.GET.get("status") or "").strip()
    q = (request.GET.get("q") or "").strip()

    if status:
        qs = qs.filter(status=status)
    if q:
        qs = qs.filter(
            Q(car_name__icontains=q) |
            Q(plate_number__icontains=q) |
            Q(comment__icontains=q)
        )

    return json_response([serialize_repair(r) for r in qs])


@staff_required
def repair_create(request):
    data = read_json(request)
    car_id = data.get("car")
    if car_id in (None, ""):
        raise ValidationError("Car selection is required.", errors={"car": ["This field is required."]})

    form = validated(RepairForm(data))
    repair = FleetStateEngine().create_repair(car_id, created_by=request.user, **form.cleaned_data)
    return json_response(serialize_repair(repair), status=201)


@login_required
@api_view(["GET", "PUT", "PATCH", "DELETE"])
def repair_detail(request, pk: int):
    if request.method in ("PUT", "PATCH"):
        return repair_update(request, pk)
    if request.method == "DELETE":
        return repair_delete(request, pk)

    repair = Repair.objects.filter(pk=pk).first()
    if repair is None:
        raise NotFoundError(f"Repair {pk} not found.")
    return json_response(serialize_repair(repair))


@staff_required
def repair_update(request, pk: int):
    data = read_json(request)
    changes = {k: v for k, v in data.items() if k not in RepairForm.Meta.fields}
    fields = [name for name in RepairForm.Meta.fields if name in data]
    if fields:
        form = validated(modelform_factory(Repair, form=RepairForm, fields=fields)(data))
        changes.update(form_values(form, data))

    repair = FleetStateEngine().update_repair(pk, changes)
    return json_response(serialize_repair(repair))


@staff_required
def repair_delete(request, pk: int):
    FleetStateEngine().delete_repair(pk)
    return json_response({"message": "Repair deleted."})


@login_required
@api_view(["POST", "PATCH"])
@staff_required
def repair_status(request, pk: int):
    data = read_json(request)
    repair = FleetStateEngine().transition_repair(pk, data.get("status"))
    return json_response(serialize_repair(repair))
