from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("fleet", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=150)),
                ("phone", models.CharField(max_length=40)),
                ("residential_address", models.CharField(max_length=255)),
                ("id_passport_number", models.CharField(max_length=60)),
                ("guarantor_name", models.CharField(max_length=150)),
                ("guarantor_id_passport_number", models.CharField(max_length=60)),
                ("guarantor_phone", models.CharField(max_length=40)),
                ("car_type", models.CharField(max_length=60)),
                ("plate_number", models.CharField(max_length=20)),
                ("rent_type", models.CharField(
                    choices=[("daily", "Daily"), ("weekly", "Weekly"), ("monthly", "Monthly"), ("custom", "Custom")],
                    max_length=10,
                )),
                ("rental_period", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("rental_date", models.DateTimeField()),
                ("return_time", models.DateTimeField()),
                ("total_price", models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                )),
                ("payment_amount", models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                )),
                ("remaining_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), editable=False, max_digits=12)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("approved", "Approved"), ("canceled", "Canceled"), ("completed", "Completed")],
                    default="pending",
                    max_length=20,
                )),
                ("create_type", models.CharField(
                    choices=[("new", "New"), ("renewal", "Renewal")],
                    default="new",
                    max_length=10,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("car", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bookings",
                    to="fleet.car",
                )),
                ("created_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="created_bookings",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["car", "status"], name="booking_car_status_idx"),
                    models.Index(fields=["rental_date"], name="booking_rental_date_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                ],
            },
        ),
    ]
