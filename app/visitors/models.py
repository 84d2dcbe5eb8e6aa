from django.db import models
from django.utils import timezone


DEFAULT_EXPECTED_DURATION = 60
MAX_EXPECTED_DURATION = 1440 * 7


class Visitor(models.Model):
    STATUS_CHECKED_IN = "Checked In"
    STATUS_CHECKED_OUT = "Checked Out"
    STATUS_CHOICES = [
        (STATUS_CHECKED_IN, "Checked In"),
        (STATUS_CHECKED_OUT, "Checked Out"),
    ]

    full_name = models.CharField(max_length=255)
    id_number = models.CharField(max_length=64)
    phone_number = models.CharField(max_length=32)
    email = models.EmailField(blank=True, default="")
    company = models.CharField(max_length=255, blank=True, default="")
    purpose = models.CharField(max_length=255)
    host_name = models.CharField(max_length=255)
    pass_id = models.CharField(max_length=64, unique=True)
    visit_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_CHECKED_IN)
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)

    expected_duration = models.PositiveIntegerField(default=DEFAULT_EXPECTED_DURATION)
    actual_duration = models.PositiveIntegerField(null=True, blank=True)
    is_overstayed = models.BooleanField(default=False)
    overstay_minutes = models.PositiveIntegerField(default=0)
    alerts_triggered = models.BooleanField(default=False)

    last_activity_time = models.DateTimeField(null=True, blank=True)
    location = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="visitors_vi_status_5a1c2e_idx"),
            models.Index(fields=["check_in_time"], name="visitors_vi_check_i_8d0b7f_idx"),
            models.Index(fields=["visit_date"], name="visitors_vi_visit_d_3e9a41_idx"),
            models.Index(fields=["purpose"], name="visitors_vi_purpose_c27f60_idx"),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.status})"

    @property
    def is_checked_in(self) -> bool:
        return self.status == self.STATUS_CHECKED_IN


class VisitorAlert(models.Model):
    TYPE_DURATION_WARNING = "Duration Warning"
    TYPE_OVERSTAY_ALERT = "Overstay Alert"
    TYPE_EXTENDED_STAY = "Extended Stay"
    TYPE_CHOICES = [
        (TYPE_DURATION_WARNING, "Duration Warning"),
        (TYPE_OVERSTAY_ALERT, "Overstay Alert"),
        (TYPE_EXTENDED_STAY, "Extended Stay"),
    ]

    visitor = models.ForeignKey(Visitor, on_delete=models.CASCADE, related_name="alert_history")
    alert_type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    message = models.CharField(max_length=255)
    triggered_at = models.DateTimeField(default=timezone.now)
    acknowledged = models.BooleanField(default=False)
    acknowledged_by = models.CharField(max_length=150, blank=True, default="")
    acknowledged_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["triggered_at", "id"]
        indexes = [
            models.Index(fields=["visitor", "alert_type", "triggered_at"], name="visitors_vi_visitor_9b4d12_idx"),
        ]

    def __str__(self):
        return f"{self.alert_type}<{self.visitor_id}@{self.triggered_at:%Y-%m-%d %H:%M}>"
