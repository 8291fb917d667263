from django.db import models


def normalize_plate(value: str) -> str:
    return (value or "").strip().upper()


class Car(models.Model):
    STATUS_AVAILABLE = "available"
    STATUS_RENTED = "rented"
    STATUS_IN_REPAIR = "in_repair"
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_RENTED, "Rented"),
        (STATUS_IN_REPAIR, "In Repair"),
    ]

    name = models.CharField(max_length=120)
    plate_number = models.CharField(max_length=20, unique=True)
    car_type = models.CharField(max_length=60)
    model = models.CharField(max_length=80)

    # Cached projection of the car's active booking/repair. Written only by
    # apps.fleet.engine.FleetStateEngine.
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["status"], name="car_status_idx"),
            models.Index(fields=["car_type"], name="car_type_idx"),
        ]

    def save(self, *args, **kwargs):
        self.plate_number = normalize_plate(self.plate_number)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.plate_number} ({self.name} {self.model})".strip()
