from __future__ import annotations

import json
import logging
from functools import wraps

from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from .errors import FleetError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def json_response(data, status: int = 200) -> JsonResponse:
    return JsonResponse(data, status=status, encoder=DjangoJSONEncoder, safe=False)


def error_response(exc: FleetError) -> JsonResponse:
    body = {"error": exc.kind, "message": exc.message}
    if exc.errors:
        body["errors"] = exc.errors
    return json_response(body, status=exc.http_status)


def read_json(request) -> dict:
    """
    Request payload as a dict. JSON bodies are parsed, form posts fall back
    to request.POST.
    """
    if request.content_type == "application/json":
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except ValueError:
            raise ValidationError("Malformed JSON body.") from None
        if not isinstance(data, dict):
            raise ValidationError("Expected a JSON object.")
        return data
    return request.POST.dict()


def api_view(methods: list[str]):
    """
    Restricts HTTP methods and turns fleet errors into JSON error responses.
    Database failures that escape the service layer surface as StorageError.
    """
    def decorator(view_func):
        @require_http_methods(methods)
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            try:
                return view_func(request, *args, **kwargs)
            except FleetError as exc:
                return error_response(exc)
            except DatabaseError as exc:
                logger.exception("Database failure in %s", view_func.__name__)
                return error_response(StorageError(str(exc)))
        return _wrapped
    return decorator


def staff_required(view_func):
    """
    The caller must be an authenticated staff user (the rental admin role).
    """
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return json_response({"error": "unauthenticated", "message": "Login required."}, status=401)
        if not user.is_staff:
            return json_response({"error": "permission_denied", "message": "Admin access required."}, status=403)
        return view_func(request, *args, **kwargs)

    return _wrapped


def form_values(form, data: dict) -> dict:
    """cleaned_data restricted to the fields the client actually sent."""
    return {name: form.cleaned_data[name] for name in form.fields if name in data}


def form_errors(form) -> dict:
    return {name: [str(e) for e in errs] for name, errs in form.errors.items()}


def validated(form):
    if not form.is_valid():
        raise ValidationError("Invalid data.", errors=form_errors(form))
    return form


def int_param(request, name: str):
    raw = (request.GET.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number.", errors={name: ["Enter a whole number."]}) from None
