from django.contrib import admin
from .models import Car

@admin.register(Car)
class CarAdmin(admin.ModelAdmin):
    list_display = ("plate_number", "name", "car_type", "model", "status", "created_at")
    list_filter = ("status", "car_type")
    search_fields = ("plate_number", "name", "model")
    # status follows the car's bookings and repairs
    readonly_fields = ("status", "created_at", "updated_at")
