from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Repair(models.Model):
    STATUS_PENDING = "pending"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_IN_PROGRESS, "In Progress"),
        (STATUS_COMPLETED, "Completed"),
    ]
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS)

    car = models.ForeignKey(
        "fleet.Car",
        on_delete=models.PROTECT,
        related_name="repairs",
    )
    # snapshot of the car at creation time
    car_name = models.CharField(max_length=120)
    plate_number = models.CharField(max_length=20)

    price_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    comment = models.TextField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    start_date = models.DateTimeField(default=timezone.now)
    completed_date = models.DateTimeField(null=True, blank=True, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_repairs",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["car", "status"], name="repair_car_status_idx"),
            models.Index(fields=["created_at"], name="repair_created_at_idx"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def save(self, *args, **kwargs):
        # Stamp completed_date the first time the repair is completed; never reset
        if self.status == self.STATUS_COMPLETED and self.completed_date is None:
            self.completed_date = timezone.now()
            update_fields = kwargs.get("update_fields")
            if update_fields is not None:
                kwargs["update_fields"] = set(update_fields) | {"completed_date"}
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.plate_number} - {self.comment[:40]} ({self.status})"
