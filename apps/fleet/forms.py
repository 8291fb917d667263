from django import forms
from .models import Car, normalize_plate

class CarForm(forms.ModelForm):
    class Meta:
        model = Car
        fields = ["name", "plate_number", "car_type", "model"]

    def clean_plate_number(self):
        return normalize_plate(self.cleaned_data.get("plate_number"))

    def validate_unique(self):
        # Duplicate plates are a conflict, reported by apps.fleet.services
        pass
