from django.contrib import admin

from apps.fleet.engine import FleetStateEngine

from .models import Booking

@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("rental_date", "full_name", "plate_number", "car_type", "status", "total_price", "payment_amount", "remaining_balance")
    list_filter = ("status", "rent_type", "create_type", "rental_date")
    search_fields = ("full_name", "phone", "plate_number", "car_type")
    # status changes go through the fleet engine so the car follows
    readonly_fields = ("status", "car", "car_type", "plate_number", "remaining_balance", "created_at", "updated_at")

    def has_add_permission(self, request):
        # created through the API so the car is claimed
        return False

    def delete_model(self, request, obj):
        FleetStateEngine(using=obj._state.db).delete_booking(obj.pk)

    def delete_queryset(self, request, queryset):
        engine = FleetStateEngine(using=queryset.db)
        for pk in list(queryset.values_list("pk", flat=True)):
            engine.delete_booking(pk)
