from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from visitors.models import Visitor, VisitorAlert


logger = logging.getLogger(__name__)

OVERSTAY_COOLDOWN = timedelta(minutes=30)
WARNING_COOLDOWN = timedelta(minutes=15)

ALERT_COOLDOWNS = {
    VisitorAlert.TYPE_OVERSTAY_ALERT: OVERSTAY_COOLDOWN,
    VisitorAlert.TYPE_DURATION_WARNING: WARNING_COOLDOWN,
}


def overstay_message(overstay_minutes: int) -> str:
    return f"Visitor has overstayed by {overstay_minutes} minutes"


def warning_message(current_duration_minutes: int, expected_duration_minutes: int) -> str:
    return (
        "Visitor approaching expected duration "
        f"({current_duration_minutes}/{expected_duration_minutes} minutes)"
    )


def is_suppressed(history: Iterable[VisitorAlert], alert_type: str, now: datetime) -> bool:
    """True when an alert of the same type was triggered inside its cooldown window."""
    cooldown = ALERT_COOLDOWNS.get(alert_type)
    if cooldown is None:
        return False

    for alert in history:
        if alert.alert_type == alert_type and now - alert.triggered_at < cooldown:
            return True
    return False


def append_alert(visitor: Visitor, alert_type: str, message: str, now: datetime) -> VisitorAlert | None:
    history = visitor.alert_history.filter(alert_type=alert_type)
    if is_suppressed(history, alert_type, now):
        logger.debug(
            "Alert suppressed by cooldown",
            extra={"visitor_id": visitor.id, "alert_type": alert_type},
        )
        return None

    alert = VisitorAlert.objects.create(
        visitor=visitor,
        alert_type=alert_type,
        message=message,
        triggered_at=now,
    )
    if alert_type == VisitorAlert.TYPE_OVERSTAY_ALERT and not visitor.alerts_triggered:
        visitor.alerts_triggered = True
        visitor.save(update_fields=["alerts_triggered", "updated_at"])

    logger.info(
        "Visitor alert triggered",
        extra={"visitor_id": visitor.id, "alert_type": alert_type, "alert_id": alert.id},
    )
    return alert
