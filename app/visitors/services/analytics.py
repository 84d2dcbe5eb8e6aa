from __future__ import annotations

from datetime import date, datetime, time

from django.db.models import Avg, Count, Max, Min
from django.db.models.functions import TruncDate
from django.utils import timezone
from django.utils.dateparse import parse_date

from visitors.exceptions import ValidationError, store_errors
from visitors.models import Visitor


HISTOGRAM_BOUNDARIES = (0, 30, 60, 120, 240, 480, 1440)


def histogram_labels() -> list[str]:
    labels = [
        f"{lower}-{upper}"
        for lower, upper in zip(HISTOGRAM_BOUNDARIES, HISTOGRAM_BOUNDARIES[1:])
    ]
    labels.append(f"{HISTOGRAM_BOUNDARIES[-1]}+")
    return labels


def bucket_for(minutes: int) -> str:
    for lower, upper in zip(HISTOGRAM_BOUNDARIES, HISTOGRAM_BOUNDARIES[1:]):
        if lower <= minutes < upper:
            return f"{lower}-{upper}"
    return f"{HISTOGRAM_BOUNDARIES[-1]}+"


def _to_date(value, name: str) -> date | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    try:
        parsed = parse_date(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{name} must be a date formatted as YYYY-MM-DD")
    return parsed


def _day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    tz = timezone.get_current_timezone()
    start_dt = timezone.make_aware(datetime.combine(start, time.min), tz) if start else None
    end_dt = timezone.make_aware(datetime.combine(end, time.max), tz) if end else None
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("startDate must be on or before endDate")
    return start_dt, end_dt


def _filter_range(queryset, field_name: str, start_date, end_date):
    start_dt, end_dt = _day_bounds(_to_date(start_date, "startDate"), _to_date(end_date, "endDate"))
    if start_dt:
        queryset = queryset.filter(**{f"{field_name}__gte": start_dt})
    if end_dt:
        queryset = queryset.filter(**{f"{field_name}__lte": end_dt})
    return queryset


def duration_analytics(start_date=None, end_date=None) -> dict:
    """Duration statistics, histogram and overstays per purpose for checked-out visits."""
    queryset = Visitor.objects.filter(
        status=Visitor.STATUS_CHECKED_OUT,
        actual_duration__isnull=False,
    )
    queryset = _filter_range(queryset, "check_in_time", start_date, end_date)

    histogram = {label: 0 for label in histogram_labels()}
    with store_errors("duration_analytics"):
        aggregates = queryset.aggregate(
            total=Count("id"),
            average=Avg("actual_duration"),
            minimum=Min("actual_duration"),
            maximum=Max("actual_duration"),
        )
        overstayed = queryset.filter(is_overstayed=True).count()
        for minutes in queryset.values_list("actual_duration", flat=True):
            histogram[bucket_for(minutes)] += 1
        by_purpose = list(
            queryset.filter(is_overstayed=True)
            .values("purpose")
            .annotate(count=Count("id"))
            .order_by("-count", "purpose")
        )
    total = aggregates["total"]

    return {
        "statistics": {
            "total_visitors": total,
            "average_duration": round(aggregates["average"] or 0, 1),
            "min_duration": aggregates["minimum"],
            "max_duration": aggregates["maximum"],
            "overstayed_count": overstayed,
            "overstay_rate": round(overstayed * 100 / total, 1) if total else 0,
        },
        "histogram": [{"range": label, "count": count} for label, count in histogram.items()],
        "overstay_by_purpose": [{"purpose": row["purpose"], "count": row["count"]} for row in by_purpose],
    }


def visitor_report(start_date, end_date) -> list[Visitor]:
    if not start_date or not end_date:
        raise ValidationError("Please provide startDate and endDate")

    queryset = _filter_range(Visitor.objects.prefetch_related("alert_history"), "visit_date", start_date, end_date)
    with store_errors("visitor_report"):
        return list(queryset.order_by("-visit_date", "-id"))


def daily_visitor_counts(start_date=None, end_date=None) -> list[dict]:
    queryset = _filter_range(Visitor.objects.all(), "created_at", start_date, end_date)
    with store_errors("daily_visitor_counts"):
        rows = list(
            queryset.annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(visitors=Count("id"))
            .order_by("day")
        )
    return [{"date": row["day"].isoformat(), "visitors": row["visitors"]} for row in rows]
