from django import forms
from .models import Booking

class BookingForm(forms.ModelForm):
    class Meta:
        model = Booking
        fields = [
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
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if "create_type" in self.fields:
            self.fields["create_type"].required = False

    def clean_create_type(self):
        return self.cleaned_data.get("create_type") or Booking.CREATE_NEW


def flatten_guarantor(data: dict) -> dict:
    """Accept the nested {"guarantor": {...}} shape as well as flat fields."""
    guarantor = data.pop("guarantor", None)
    if isinstance(guarantor, dict):
        for key in ("name", "id_passport_number", "phone"):
            if key in guarantor:
                data.setdefault(f"guarantor_{key}", guarantor[key])
    return data
