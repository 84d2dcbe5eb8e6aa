from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from visitors.exceptions import ConflictError, NotFoundError, ValidationError, store_errors
from visitors.models import DEFAULT_EXPECTED_DURATION, MAX_EXPECTED_DURATION, Visitor, VisitorAlert
from visitors.services.alert_ledger import append_alert, overstay_message, warning_message
from visitors.services.duration_policy import checkout_duration_minutes, evaluate_duration
from visitors.services.pass_encoding import new_pass_id, pass_qr_data_url


logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("full_name", "id_number", "phone_number", "purpose", "host_name")
OPTIONAL_FIELDS = ("email", "company", "location", "notes")
SEARCH_FIELDS = ("full_name", "id_number", "phone_number", "email", "company", "purpose", "host_name")

MAX_PAGE_SIZE = 100
MAX_OFFSET = 1_000_000
VALID_STATUSES = {value for value, _ in Visitor.STATUS_CHOICES}

SORT_FIELDS = {
    "createdAt": "created_at",
    "visitDate": "visit_date",
    "fullName": "full_name",
    "checkInTime": "check_in_time",
    "checkOutTime": "check_out_time",
    "status": "status",
    "company": "company",
    "purpose": "purpose",
    "hostName": "host_name",
    "expectedDuration": "expected_duration",
    "actualDuration": "actual_duration",
    "overstayMinutes": "overstay_minutes",
}
SORT_FIELDS.update({name: name for name in list(SORT_FIELDS.values())})


@dataclass
class SweepResult:
    overstayed: list[dict] = field(default_factory=list)
    warnings: list[dict] = field(default_factory=list)
    checked: int = 0
    new_alerts: int = 0

    @property
    def counts(self) -> dict:
        return {
            "checked": self.checked,
            "overstayed": len(self.overstayed),
            "warnings": len(self.warnings),
            "new_alerts": self.new_alerts,
        }


def _clean(value) -> str:
    return str(value or "").strip()


def _positive_int(value, name: str, maximum: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer") from None
    if number <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{name} must be at most {maximum}")
    return number


def _get_visitor(visitor_id) -> Visitor:
    try:
        pk = int(visitor_id)
    except (TypeError, ValueError):
        raise NotFoundError("Visitor not found") from None

    visitor = Visitor.objects.filter(pk=pk).first()
    if visitor is None:
        raise NotFoundError("Visitor not found")
    return visitor


def _check_in_reference(visitor: Visitor) -> datetime:
    return visitor.check_in_time or visitor.visit_date


def register_visitor(
    fields: dict,
    expected_duration=DEFAULT_EXPECTED_DURATION,
    now: datetime | None = None,
) -> tuple[Visitor, str]:
    """Create a checked-in visitor and return it with the QR encoding of its pass id."""
    values = {name: _clean(fields.get(name)) for name in REQUIRED_FIELDS + OPTIONAL_FIELDS}
    missing = [name for name in REQUIRED_FIELDS if not values[name]]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    expected = _positive_int(expected_duration, "expected_duration", MAX_EXPECTED_DURATION)

    now = now or timezone.now()
    pass_id = new_pass_id()
    qr_code = pass_qr_data_url(pass_id)

    with store_errors("register_visitor"):
        visitor = Visitor.objects.create(
            **values,
            pass_id=pass_id,
            visit_date=now,
            status=Visitor.STATUS_CHECKED_IN,
            check_in_time=now,
            last_activity_time=now,
            expected_duration=expected,
        )

    logger.info("Visitor registered", extra={"visitor_id": visitor.id, "pass_id": pass_id})
    return visitor, qr_code


def get_visitor(visitor_id) -> Visitor:
    with store_errors("get_visitor"):
        return _get_visitor(visitor_id)


def check_out(visitor_id, now: datetime | None = None) -> Visitor:
    now = now or timezone.now()

    with store_errors("check_out"), transaction.atomic():
        visitor = _get_visitor(visitor_id)
        if not visitor.is_checked_in:
            raise ConflictError("Visitor is not currently checked in")

        actual = checkout_duration_minutes(_check_in_reference(visitor), now)
        visitor.check_out_time = now
        visitor.status = Visitor.STATUS_CHECKED_OUT
        visitor.actual_duration = actual
        if actual > visitor.expected_duration:
            visitor.is_overstayed = True
            visitor.overstay_minutes = actual - visitor.expected_duration
        else:
            visitor.is_overstayed = False
            visitor.overstay_minutes = 0
        visitor.save()

    logger.info(
        "Visitor checked out",
        extra={
            "visitor_id": visitor.id,
            "actual_duration": visitor.actual_duration,
            "overstay_minutes": visitor.overstay_minutes,
        },
    )
    return visitor


def update_expected_duration(
    visitor_id,
    minutes,
    notes: str | None = None,
    now: datetime | None = None,
) -> Visitor:
    now = now or timezone.now()

    with store_errors("update_expected_duration"), transaction.atomic():
        visitor = _get_visitor(visitor_id)
        if not visitor.is_checked_in:
            raise ConflictError("Expected duration can only be changed while the visitor is checked in")
        expected = _positive_int(minutes, "expected_duration", MAX_EXPECTED_DURATION)

        status = evaluate_duration(_check_in_reference(visitor), expected, now)
        visitor.expected_duration = expected
        visitor.is_overstayed = status.is_overstayed
        visitor.overstay_minutes = status.overstay_minutes
        if notes is not None:
            visitor.notes = notes
        visitor.save()

    logger.info("Expected duration updated", extra={"visitor_id": visitor.id, "expected_duration": expected})
    return visitor


def acknowledge_alert(visitor_id, alert_id, acknowledged_by: str, now: datetime | None = None) -> VisitorAlert:
    now = now or timezone.now()

    with store_errors("acknowledge_alert"), transaction.atomic():
        visitor = _get_visitor(visitor_id)
        try:
            alert_pk = int(alert_id)
        except (TypeError, ValueError):
            raise NotFoundError("Alert not found") from None

        alert = visitor.alert_history.filter(pk=alert_pk).first()
        if alert is None:
            raise NotFoundError("Alert not found")

        alert.acknowledged = True
        alert.acknowledged_by = _clean(acknowledged_by)
        alert.acknowledged_at = now
        alert.save(update_fields=["acknowledged", "acknowledged_by", "acknowledged_at"])

    logger.info(
        "Visitor alert acknowledged",
        extra={"visitor_id": visitor.id, "alert_id": alert.id, "acknowledged_by": alert.acknowledged_by},
    )
    return alert


def list_visitors(
    search: str = "",
    statuses: list[str] | None = None,
    company: str = "",
    purpose: str = "",
    sort_field: str = "createdAt",
    sort_order: str = "desc",
    page=1,
    limit=10,
) -> tuple[list[Visitor], dict]:
    page = _positive_int(page, "page")
    limit = _positive_int(limit, "limit", MAX_PAGE_SIZE)
    if (page - 1) * limit > MAX_OFFSET:
        raise ValidationError(f"page {page} is beyond the last reachable page")
    unknown = sorted(set(statuses or []) - VALID_STATUSES)
    if unknown:
        raise ValidationError(f"Unknown visitor status: {', '.join(unknown)}")

    order_field = SORT_FIELDS.get(sort_field)
    if order_field is None:
        raise ValidationError(f"Cannot sort visitors by '{sort_field}'")
    if str(sort_order).lower() != "asc":
        order_field = f"-{order_field}"
    tie_breaker = "id" if not order_field.startswith("-") else "-id"

    queryset = Visitor.objects.prefetch_related("alert_history")
    search = _clean(search)
    if search:
        query = Q()
        for name in SEARCH_FIELDS:
            query |= Q(**{f"{name}__icontains": search})
        queryset = queryset.filter(query)
    if statuses:
        queryset = queryset.filter(status__in=statuses)
    if _clean(company):
        queryset = queryset.filter(company=_clean(company))
    if _clean(purpose):
        queryset = queryset.filter(purpose=_clean(purpose))

    skip = (page - 1) * limit
    with store_errors("list_visitors"):
        total = queryset.count()
        visitors = list(queryset.order_by(order_field, tie_breaker)[skip : skip + limit])

    pagination = {
        "current_page": page,
        "total": total,
        "total_pages": math.ceil(total / limit),
        "per_page": limit,
    }
    return visitors, pagination


def _sweep_visitor(visitor: Visitor, now: datetime, result: SweepResult) -> None:
    status = evaluate_duration(_check_in_reference(visitor), visitor.expected_duration, now)

    if status.is_overstayed:
        visitor.is_overstayed = True
        visitor.overstay_minutes = status.overstay_minutes
        visitor.last_activity_time = now
        visitor.save(update_fields=["is_overstayed", "overstay_minutes", "last_activity_time", "updated_at"])
        alert = append_alert(
            visitor,
            VisitorAlert.TYPE_OVERSTAY_ALERT,
            overstay_message(status.overstay_minutes),
            now,
        )
        result.overstayed.append(
            {
                "visitor": visitor,
                "current_duration_minutes": status.current_duration_minutes,
                "overstay_minutes": status.overstay_minutes,
                "alert_created": alert is not None,
            }
        )
    elif status.is_approaching_limit:
        alert = append_alert(
            visitor,
            VisitorAlert.TYPE_DURATION_WARNING,
            warning_message(status.current_duration_minutes, status.expected_duration_minutes),
            now,
        )
        result.warnings.append(
            {
                "visitor": visitor,
                "current_duration_minutes": status.current_duration_minutes,
                "remaining_minutes": status.remaining_minutes,
                "alert_created": alert is not None,
            }
        )
    else:
        return

    if alert is not None:
        result.new_alerts += 1


def check_overstayed_visitors(now: datetime | None = None) -> SweepResult:
    """Re-classify every checked-in visitor and append alerts outside their cooldown."""
    now = now or timezone.now()
    result = SweepResult()

    with store_errors("check_overstayed_visitors"):
        checked_in = Visitor.objects.filter(status=Visitor.STATUS_CHECKED_IN).order_by("check_in_time", "id")
        for visitor in list(checked_in):
            result.checked += 1
            with transaction.atomic():
                _sweep_visitor(visitor, now, result)

    logger.info("Overstay sweep finished", extra=result.counts)
    return result
