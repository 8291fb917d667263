from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class Booking(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_CANCELED = "canceled"
    STATUS_COMPLETED = "completed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_CANCELED, "Canceled"),
        (STATUS_COMPLETED, "Completed"),
    ]
    # Statuses in which the booking occupies its car
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)
    TERMINAL_STATUSES = (STATUS_CANCELED, STATUS_COMPLETED)

    RENT_DAILY = "daily"
    RENT_WEEKLY = "weekly"
    RENT_MONTHLY = "monthly"
    RENT_CUSTOM = "custom"
    RENT_TYPE_CHOICES = [
        (RENT_DAILY, "Daily"),
        (RENT_WEEKLY, "Weekly"),
        (RENT_MONTHLY, "Monthly"),
        (RENT_CUSTOM, "Custom"),
    ]

    CREATE_NEW = "new"
    CREATE_RENEWAL = "renewal"
    CREATE_TYPE_CHOICES = [
        (CREATE_NEW, "New"),
        (CREATE_RENEWAL, "Renewal"),
    ]

    # customer
    full_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=40)
    residential_address = models.CharField(max_length=255)
    id_passport_number = models.CharField(max_length=60)

    # guarantor (all three required)
    guarantor_name = models.CharField(max_length=150)
    guarantor_id_passport_number = models.CharField(max_length=60)
    guarantor_phone = models.CharField(max_length=40)

    car = models.ForeignKey(
        "fleet.Car",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    # snapshot of the car at creation time
    car_type = models.CharField(max_length=60)
    plate_number = models.CharField(max_length=20)

    rent_type = models.CharField(max_length=10, choices=RENT_TYPE_CHOICES)
    rental_period = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    rental_date = models.DateTimeField()
    return_time = models.DateTimeField()

    total_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    payment_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    remaining_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"), editable=False)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    create_type = models.CharField(max_length=10, choices=CREATE_TYPE_CHOICES, default=CREATE_NEW)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_bookings",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["car", "status"], name="booking_car_status_idx"),
            models.Index(fields=["rental_date"], name="booking_rental_date_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def clean(self):
        if self.rental_date and self.return_time and self.rental_date > self.return_time:
            raise ValidationError({"return_time": "Return time must not be before the rental date."})

    def save(self, *args, **kwargs):
        self.remaining_balance = (self.total_price or Decimal("0")) - (self.payment_amount or Decimal("0"))
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"remaining_balance", "updated_at"}
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.full_name} - {self.plate_number} ({self.status})"
