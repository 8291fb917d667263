from django.contrib import admin

from apps.fleet.engine import FleetStateEngine

from .models import Repair

@admin.register(Repair)
class RepairAdmin(admin.ModelAdmin):
    list_display = ("created_at", "plate_number", "car_name", "status", "price_amount", "start_date", "completed_date")
    list_filter = ("status", "created_at")
    search_fields = ("comment", "plate_number", "car_name")
    readonly_fields = ("status", "car", "car_name", "plate_number", "completed_date", "created_at", "updated_at")

    def has_add_permission(self, request):
        # created through the API so the car is claimed
        return False

    def delete_model(self, request, obj):
        FleetStateEngine(using=obj._state.db).delete_repair(obj.pk)

    def delete_queryset(self, request, queryset):
        engine = FleetStateEngine(using=queryset.db)
        for pk in list(queryset.values_list("pk", flat=True)):
            engine.delete_repair(pk)
