from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Car",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("plate_number", models.CharField(max_length=20, unique=True)),
                ("car_type", models.CharField(max_length=60)),
                ("model", models.CharField(max_length=80)),
                ("status", models.CharField(
                    choices=[("available", "Available"), ("rented", "Rented"), ("in_repair", "In Repair")],
                    default="available",
                    max_length=20,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["status"], name="car_status_idx"),
                    models.Index(fields=["car_type"], name="car_type_idx"),
                ],
            },
        ),
    ]
