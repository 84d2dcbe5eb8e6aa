from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Visitor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=255)),
                ("id_number", models.CharField(max_length=64)),
                ("phone_number", models.CharField(max_length=32)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("company", models.CharField(blank=True, default="", max_length=255)),
                ("purpose", models.CharField(max_length=255)),
                ("host_name", models.CharField(max_length=255)),
                ("pass_id", models.CharField(max_length=64, unique=True)),
                ("visit_date", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[("Checked In", "Checked In"), ("Checked Out", "Checked Out")],
                        default="Checked In",
                        max_length=16,
                    ),
                ),
                ("check_in_time", models.DateTimeField(blank=True, null=True)),
                ("check_out_time", models.DateTimeField(blank=True, null=True)),
                ("expected_duration", models.PositiveIntegerField(default=60)),
                ("actual_duration", models.PositiveIntegerField(blank=True, null=True)),
                ("is_overstayed", models.BooleanField(default=False)),
                ("overstay_minutes", models.PositiveIntegerField(default=0)),
                ("alerts_triggered", models.BooleanField(default=False)),
                ("last_activity_time", models.DateTimeField(blank=True, null=True)),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="visitors_vi_status_5a1c2e_idx"),
                    models.Index(fields=["check_in_time"], name="visitors_vi_check_i_8d0b7f_idx"),
                    models.Index(fields=["visit_date"], name="visitors_vi_visit_d_3e9a41_idx"),
                    models.Index(fields=["purpose"], name="visitors_vi_purpose_c27f60_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VisitorAlert",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "alert_type",
                    models.CharField(
                        choices=[
                            ("Duration Warning", "Duration Warning"),
                            ("Overstay Alert", "Overstay Alert"),
                            ("Extended Stay", "Extended Stay"),
                        ],
                        max_length=32,
                    ),
                ),
                ("message", models.CharField(max_length=255)),
                ("triggered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("acknowledged", models.BooleanField(default=False)),
                ("acknowledged_by", models.CharField(blank=True, default="", max_length=150)),
                ("acknowledged_at", models.DateTimeField(blank=True, null=True)),
                (
                    "visitor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alert_history",
                        to="visitors.visitor",
                    ),
                ),
            ],
            options={
                "ordering": ["triggered_at", "id"],
                "indexes": [
                    models.Index(fields=["visitor", "alert_type", "triggered_at"], name="visitors_vi_visitor_9b4d12_idx"),
                ],
            },
        ),
    ]
