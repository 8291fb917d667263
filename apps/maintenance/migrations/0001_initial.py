from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
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
            name="Repair",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("car_name", models.CharField(max_length=120)),
                ("plate_number", models.CharField(max_length=20)),
                ("price_amount", models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                )),
                ("comment", models.TextField()),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("in_progress", "In Progress"), ("completed", "Completed")],
                    default="pending",
                    max_length=20,
                )),
                ("start_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_date", models.DateTimeField(blank=True, editable=False, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("car", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="repairs",
                    to="fleet.car",
                )),
                ("created_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="created_repairs",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["car", "status"], name="repair_car_status_idx"),
                    models.Index(fields=["created_at"], name="repair_created_at_idx"),
                ],
            },
        ),
    ]
