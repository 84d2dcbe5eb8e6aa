from datetime import datetime, timedelta
from io import StringIO
from types import SimpleNamespace
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import OperationalError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from visitors.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from visitors.models import MAX_EXPECTED_DURATION, Visitor, VisitorAlert
from visitors.services import alert_ledger, analytics, lifecycle
from visitors.services.duration_policy import (
    APPROACHING_LIMIT,
    NORMAL,
    OVERSTAYED,
    checkout_duration_minutes,
    evaluate_duration,
)


User = get_user_model()

VISITOR_FIELDS = {
    "full_name": "Jane Wanjiku",
    "id_number": "32456789",
    "phone_number": "0712345678",
    "email": "jane@example.com",
    "company": "Acme Supplies",
    "purpose": "Meeting",
    "host_name": "Mr. Otieno",
}


def _fields(**overrides):
    fields = dict(VISITOR_FIELDS)
    fields.update(overrides)
    return fields


class DurationPolicyTests(SimpleTestCase):
    def setUp(self):
        self.t0 = timezone.make_aware(datetime(2026, 3, 2, 9, 0))

    def test_warning_band_starts_at_eighty_percent(self):
        self.assertEqual(evaluate_duration(self.t0, 60, self.t0 + timedelta(minutes=47)).classification, NORMAL)

        result = evaluate_duration(self.t0, 60, self.t0 + timedelta(minutes=48))
        self.assertEqual(result.classification, APPROACHING_LIMIT)
        self.assertEqual(result.remaining_minutes, 12)

    def test_overstay_reports_minutes_over_expected(self):
        result = evaluate_duration(self.t0, 60, self.t0 + timedelta(minutes=70))

        self.assertEqual(result.classification, OVERSTAYED)
        self.assertEqual(result.current_duration_minutes, 70)
        self.assertEqual(result.overstay_minutes, 10)
        self.assertEqual(result.remaining_minutes, 0)

    def test_current_duration_is_floored(self):
        result = evaluate_duration(self.t0, 60, self.t0 + timedelta(minutes=60, seconds=59))

        self.assertEqual(result.current_duration_minutes, 60)
        self.assertEqual(result.classification, NORMAL)

    def test_zero_expected_duration_overstays_immediately(self):
        self.assertEqual(evaluate_duration(self.t0, 0, self.t0).classification, NORMAL)

        result = evaluate_duration(self.t0, 0, self.t0 + timedelta(minutes=1))
        self.assertEqual(result.classification, OVERSTAYED)
        self.assertEqual(result.overstay_minutes, 1)

    def test_classifications_are_exclusive_and_exhaustive(self):
        for expected in (0, 1, 10, 30, 60, 240):
            for minutes in range(0, 300, 7):
                result = evaluate_duration(self.t0, expected, self.t0 + timedelta(minutes=minutes))
                over = minutes > expected
                warn = expected * 0.8 <= minutes < expected
                self.assertFalse(over and warn)
                if over:
                    self.assertEqual(result.classification, OVERSTAYED)
                elif warn:
                    self.assertEqual(result.classification, APPROACHING_LIMIT)
                else:
                    self.assertEqual(result.classification, NORMAL)

    def test_checkout_duration_rounds_half_up(self):
        self.assertEqual(checkout_duration_minutes(self.t0, self.t0 + timedelta(minutes=44, seconds=30)), 45)
        self.assertEqual(checkout_duration_minutes(self.t0, self.t0 + timedelta(minutes=44, seconds=29)), 44)


class AlertLedgerTests(SimpleTestCase):
    def setUp(self):
        self.now = timezone.make_aware(datetime(2026, 3, 2, 11, 0))

    def _alert(self, alert_type, minutes_ago):
        return SimpleNamespace(alert_type=alert_type, triggered_at=self.now - timedelta(minutes=minutes_ago))

    def test_overstay_alert_suppressed_within_thirty_minutes(self):
        history = [self._alert(VisitorAlert.TYPE_OVERSTAY_ALERT, 29)]
        self.assertTrue(alert_ledger.is_suppressed(history, VisitorAlert.TYPE_OVERSTAY_ALERT, self.now))

        history = [self._alert(VisitorAlert.TYPE_OVERSTAY_ALERT, 30)]
        self.assertFalse(alert_ledger.is_suppressed(history, VisitorAlert.TYPE_OVERSTAY_ALERT, self.now))

    def test_warning_suppressed_within_fifteen_minutes(self):
        history = [self._alert(VisitorAlert.TYPE_DURATION_WARNING, 14)]
        self.assertTrue(alert_ledger.is_suppressed(history, VisitorAlert.TYPE_DURATION_WARNING, self.now))

        history = [self._alert(VisitorAlert.TYPE_DURATION_WARNING, 16)]
        self.assertFalse(alert_ledger.is_suppressed(history, VisitorAlert.TYPE_DURATION_WARNING, self.now))

    def test_other_alert_types_do_not_suppress(self):
        history = [self._alert(VisitorAlert.TYPE_DURATION_WARNING, 1)]
        self.assertFalse(alert_ledger.is_suppressed(history, VisitorAlert.TYPE_OVERSTAY_ALERT, self.now))

    def test_messages(self):
        self.assertEqual(alert_ledger.overstay_message(10), "Visitor has overstayed by 10 minutes")
        self.assertEqual(
            alert_ledger.warning_message(50, 60),
            "Visitor approaching expected duration (50/60 minutes)",
        )


class VisitorLifecycleTests(TestCase):
    def setUp(self):
        self.t0 = timezone.now() - timedelta(hours=6)

    def _register(self, expected_duration=60, **overrides):
        visitor, _ = lifecycle.register_visitor(_fields(**overrides), expected_duration=expected_duration, now=self.t0)
        return visitor

    def test_register_creates_checked_in_visitor_with_pass(self):
        visitor, qr_code = lifecycle.register_visitor(_fields(), now=self.t0)

        self.assertEqual(visitor.status, Visitor.STATUS_CHECKED_IN)
        self.assertEqual(visitor.check_in_time, self.t0)
        self.assertEqual(visitor.last_activity_time, self.t0)
        self.assertEqual(visitor.expected_duration, 60)
        self.assertIsNone(visitor.check_out_time)
        self.assertIsNone(visitor.actual_duration)
        self.assertTrue(visitor.pass_id)
        self.assertTrue(qr_code.startswith("data:image/png;base64,"))

    def test_register_generates_unique_pass_ids(self):
        first = self._register()
        second = self._register(full_name="John Kamau")

        self.assertNotEqual(first.pass_id, second.pass_id)

    def test_register_requires_identity_fields(self):
        for name in ("full_name", "id_number", "phone_number", "purpose", "host_name"):
            with self.subTest(field=name):
                with self.assertRaises(ValidationError) as exc:
                    lifecycle.register_visitor(_fields(**{name: "  "}))
                self.assertIn(name, exc.exception.message)
        self.assertEqual(Visitor.objects.count(), 0)

    def test_register_rejects_non_positive_expected_duration(self):
        with self.assertRaises(ValidationError):
            lifecycle.register_visitor(_fields(), expected_duration=0)

    def test_sweep_warns_once_within_cooldown(self):
        visitor = self._register(expected_duration=60)

        result = lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=50))
        self.assertEqual(len(result.warnings), 1)
        self.assertEqual(result.warnings[0]["current_duration_minutes"], 50)
        self.assertEqual(result.warnings[0]["remaining_minutes"], 10)
        self.assertTrue(result.warnings[0]["alert_created"])

        result = lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=52))
        self.assertEqual(len(result.warnings), 1)
        self.assertFalse(result.warnings[0]["alert_created"])
        self.assertEqual(result.counts["new_alerts"], 0)

        alerts = list(visitor.alert_history.all())
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0].alert_type, VisitorAlert.TYPE_DURATION_WARNING)
        self.assertEqual(alerts[0].message, "Visitor approaching expected duration (50/60 minutes)")

        visitor.refresh_from_db()
        self.assertFalse(visitor.is_overstayed)
        self.assertFalse(visitor.alerts_triggered)
        self.assertEqual(visitor.last_activity_time, self.t0)

    def test_sweep_flags_overstay_and_respects_cooldown(self):
        visitor = self._register(expected_duration=60)
        sweep_time = self.t0 + timedelta(minutes=70)

        result = lifecycle.check_overstayed_visitors(now=sweep_time)

        self.assertEqual(result.counts["overstayed"], 1)
        self.assertEqual(result.overstayed[0]["overstay_minutes"], 10)
        visitor.refresh_from_db()
        self.assertTrue(visitor.is_overstayed)
        self.assertTrue(visitor.alerts_triggered)
        self.assertEqual(visitor.overstay_minutes, 10)
        self.assertEqual(visitor.last_activity_time, sweep_time)
        overstay_alerts = visitor.alert_history.filter(alert_type=VisitorAlert.TYPE_OVERSTAY_ALERT)
        self.assertEqual(overstay_alerts.count(), 1)
        self.assertEqual(overstay_alerts.get().message, "Visitor has overstayed by 10 minutes")

        lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=80))
        self.assertEqual(overstay_alerts.count(), 1)
        visitor.refresh_from_db()
        self.assertEqual(visitor.overstay_minutes, 20)

        lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=101))
        self.assertEqual(overstay_alerts.count(), 2)

    def test_sweep_ignores_checked_out_visitors(self):
        visitor = self._register(expected_duration=30)
        lifecycle.check_out(visitor.id, now=self.t0 + timedelta(minutes=10))

        result = lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=90))

        self.assertEqual(result.counts["checked"], 0)
        self.assertEqual(VisitorAlert.objects.count(), 0)

    def test_checkout_within_expected_duration(self):
        visitor = self._register(expected_duration=60)

        visitor = lifecycle.check_out(visitor.id, now=self.t0 + timedelta(minutes=45))

        self.assertEqual(visitor.status, Visitor.STATUS_CHECKED_OUT)
        self.assertEqual(visitor.actual_duration, 45)
        self.assertFalse(visitor.is_overstayed)
        self.assertEqual(visitor.overstay_minutes, 0)

    def test_checkout_after_expected_duration(self):
        visitor = self._register(expected_duration=30)

        visitor = lifecycle.check_out(visitor.id, now=self.t0 + timedelta(minutes=40))

        self.assertEqual(visitor.actual_duration, 40)
        self.assertTrue(visitor.is_overstayed)
        self.assertEqual(visitor.overstay_minutes, 10)

    def test_second_checkout_conflicts_without_mutation(self):
        visitor = self._register()
        lifecycle.check_out(visitor.id, now=self.t0 + timedelta(minutes=20))
        before = Visitor.objects.get(pk=visitor.id)

        with self.assertRaises(ConflictError):
            lifecycle.check_out(visitor.id, now=self.t0 + timedelta(minutes=90))

        after = Visitor.objects.get(pk=visitor.id)
        self.assertEqual(after.check_out_time, before.check_out_time)
        self.assertEqual(after.actual_duration, 20)
        self.assertEqual(after.updated_at, before.updated_at)

    def test_checkout_unknown_visitor(self):
        with self.assertRaises(NotFoundError):
            lifecycle.check_out(999)

    def test_status_matches_checkout_fields(self):
        staying = self._register()
        leaving = self._register(full_name="John Kamau")
        lifecycle.check_out(leaving.id, now=self.t0 + timedelta(minutes=5))

        for visitor in Visitor.objects.all():
            checked_out = visitor.status == Visitor.STATUS_CHECKED_OUT
            self.assertEqual(checked_out, visitor.check_out_time is not None)
            self.assertEqual(checked_out, visitor.actual_duration is not None)
        self.assertTrue(Visitor.objects.get(pk=staying.id).is_checked_in)

    def test_update_expected_duration_rederives_overstay(self):
        visitor = self._register(expected_duration=30)
        lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=40))

        visitor = lifecycle.update_expected_duration(
            visitor.id, 90, notes="Extended meeting", now=self.t0 + timedelta(minutes=41)
        )

        self.assertEqual(visitor.expected_duration, 90)
        self.assertEqual(visitor.notes, "Extended meeting")
        self.assertFalse(visitor.is_overstayed)
        self.assertEqual(visitor.overstay_minutes, 0)
        self.assertEqual(visitor.alert_history.count(), 1)

    def test_update_expected_duration_rejects_invalid_minutes(self):
        visitor = self._register()

        with self.assertRaises(ValidationError):
            lifecycle.update_expected_duration(visitor.id, 0)
        with self.assertRaises(ValidationError):
            lifecycle.update_expected_duration(visitor.id, -15)
        with self.assertRaises(ValidationError):
            lifecycle.update_expected_duration(visitor.id, MAX_EXPECTED_DURATION + 1)

    def test_register_rejects_expected_duration_above_cap(self):
        with self.assertRaises(ValidationError):
            lifecycle.register_visitor(_fields(), expected_duration=10**20)
        self.assertEqual(Visitor.objects.count(), 0)

    def test_update_expected_duration_requires_checked_in(self):
        visitor = self._register()
        lifecycle.check_out(visitor.id, now=self.t0 + timedelta(minutes=5))

        with self.assertRaises(ConflictError):
            lifecycle.update_expected_duration(visitor.id, 120)

    def test_acknowledge_alert_is_idempotent(self):
        visitor = self._register(expected_duration=60)
        lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=70))
        alert = visitor.alert_history.get()

        first_time = self.t0 + timedelta(minutes=75)
        lifecycle.acknowledge_alert(visitor.id, alert.id, "Front Desk", now=first_time)
        second_time = self.t0 + timedelta(minutes=80)
        acknowledged = lifecycle.acknowledge_alert(visitor.id, alert.id, "Deputy Principal", now=second_time)

        self.assertTrue(acknowledged.acknowledged)
        self.assertEqual(acknowledged.acknowledged_by, "Deputy Principal")
        self.assertEqual(acknowledged.acknowledged_at, second_time)
        self.assertEqual(visitor.alert_history.count(), 1)

    def test_acknowledge_alert_of_another_visitor_is_not_found(self):
        owner = self._register(expected_duration=10)
        other = self._register(full_name="John Kamau")
        lifecycle.check_overstayed_visitors(now=self.t0 + timedelta(minutes=20))
        alert = owner.alert_history.get()

        with self.assertRaises(NotFoundError):
            lifecycle.acknowledge_alert(other.id, alert.id, "Front Desk")
        with self.assertRaises(NotFoundError):
            lifecycle.acknowledge_alert(owner.id, alert.id + 100, "Front Desk")

    def test_list_visitors_filters_and_paginates(self):
        self._register(full_name="Alice Achieng", company="Acme Supplies")
        self._register(full_name="Brian Mutua", company="Acme Supplies")
        self._register(full_name="Carol Njeri", company="Blue Ltd", purpose="Delivery")

        visitors, pagination = lifecycle.list_visitors(
            search="acme", sort_field="fullName", sort_order="asc", page=2, limit=1
        )

        self.assertEqual([visitor.full_name for visitor in visitors], ["Brian Mutua"])
        self.assertEqual(pagination, {"current_page": 2, "total": 2, "total_pages": 2, "per_page": 1})

        visitors, _ = lifecycle.list_visitors(purpose="Delivery")
        self.assertEqual([visitor.full_name for visitor in visitors], ["Carol Njeri"])

    def test_list_visitors_rejects_unknown_sort_field(self):
        with self.assertRaises(ValidationError):
            lifecycle.list_visitors(sort_field="password")

    def test_list_visitors_rejects_out_of_range_paging(self):
        with self.assertRaises(ValidationError):
            lifecycle.list_visitors(limit=lifecycle.MAX_PAGE_SIZE + 1)
        with self.assertRaises(ValidationError):
            lifecycle.list_visitors(page=10**20, limit=10)

    def test_list_visitors_rejects_unknown_status(self):
        with self.assertRaises(ValidationError) as exc:
            lifecycle.list_visitors(statuses=["CheckedIn"])
        self.assertIn("CheckedIn", exc.exception.message)

    def test_store_failures_surface_as_store_error(self):
        with patch("visitors.services.lifecycle.Visitor.objects") as objects:
            objects.filter.side_effect = OperationalError("database is locked")

            with self.assertRaises(StoreError) as exc:
                lifecycle.get_visitor(1)

        self.assertIsInstance(exc.exception.__cause__, OperationalError)


class DurationAnalyticsTests(TestCase):
    def _checked_out(self, duration, purpose, check_in):
        return Visitor.objects.create(
            full_name=f"Visitor {duration}",
            id_number=str(duration),
            phone_number="0700000000",
            purpose=purpose,
            host_name="Reception",
            pass_id=f"pass-{duration}-{purpose}",
            status=Visitor.STATUS_CHECKED_OUT,
            check_in_time=check_in,
            check_out_time=check_in + timedelta(minutes=duration),
            expected_duration=60,
            actual_duration=duration,
            is_overstayed=duration > 60,
            overstay_minutes=max(0, duration - 60),
        )

    def setUp(self):
        march = timezone.make_aware(datetime(2026, 3, 2, 9, 0))
        for duration, purpose in [
            (20, "Meeting"),
            (45, "Delivery"),
            (75, "Meeting"),
            (90, "Meeting"),
            (130, "Delivery"),
            (1500, "Meeting"),
        ]:
            self._checked_out(duration, purpose, march)
        self._checked_out(10, "Interview", timezone.make_aware(datetime(2026, 4, 15, 9, 0)))
        lifecycle.register_visitor(_fields(), now=march)

    def test_statistics_histogram_and_purposes(self):
        report = analytics.duration_analytics("2026-03-01", "2026-03-31")

        self.assertEqual(
            report["statistics"],
            {
                "total_visitors": 6,
                "average_duration": 310.0,
                "min_duration": 20,
                "max_duration": 1500,
                "overstayed_count": 4,
                "overstay_rate": 66.7,
            },
        )
        self.assertEqual(
            report["histogram"],
            [
                {"range": "0-30", "count": 1},
                {"range": "30-60", "count": 1},
                {"range": "60-120", "count": 2},
                {"range": "120-240", "count": 1},
                {"range": "240-480", "count": 0},
                {"range": "480-1440", "count": 0},
                {"range": "1440+", "count": 1},
            ],
        )
        self.assertEqual(
            report["overstay_by_purpose"],
            [{"purpose": "Meeting", "count": 3}, {"purpose": "Delivery", "count": 1}],
        )

    def test_without_range_covers_all_checked_out_visits(self):
        report = analytics.duration_analytics()

        self.assertEqual(report["statistics"]["total_visitors"], 7)

    def test_empty_range_has_zero_rate(self):
        report = analytics.duration_analytics("2030-01-01", "2030-01-31")

        self.assertEqual(report["statistics"]["total_visitors"], 0)
        self.assertEqual(report["statistics"]["overstay_rate"], 0)
        self.assertEqual(report["statistics"]["average_duration"], 0)
        self.assertIsNone(report["statistics"]["min_duration"])
        self.assertEqual(report["overstay_by_purpose"], [])
        self.assertTrue(all(bucket["count"] == 0 for bucket in report["histogram"]))

    def test_invalid_dates_are_rejected(self):
        with self.assertRaises(ValidationError):
            analytics.duration_analytics("March", "2026-03-31")
        with self.assertRaises(ValidationError):
            analytics.duration_analytics("2026-03-31", "2026-03-01")

    def test_visitor_report_requires_both_dates(self):
        with self.assertRaises(ValidationError):
            analytics.visitor_report("2026-03-01", None)

        visitors = analytics.visitor_report("2001-04-01", "2001-04-30")
        self.assertEqual(visitors, [])

    def test_daily_visitor_counts(self):
        Visitor.objects.all().delete()
        first = lifecycle.register_visitor(_fields(full_name="A"))[0]
        second = lifecycle.register_visitor(_fields(full_name="B"))[0]
        third = lifecycle.register_visitor(_fields(full_name="C"))[0]
        Visitor.objects.filter(pk__in=[first.id, second.id]).update(
            created_at=timezone.make_aware(datetime(2026, 3, 2, 10, 0))
        )
        Visitor.objects.filter(pk=third.id).update(created_at=timezone.make_aware(datetime(2026, 3, 3, 10, 0)))

        self.assertEqual(
            analytics.daily_visitor_counts("2026-03-01", "2026-03-31"),
            [{"date": "2026-03-02", "visitors": 2}, {"date": "2026-03-03", "visitors": 1}],
        )


class VisitorApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="frontdesk", password="pwd12345")
        self.client.force_authenticate(self.user)

    def _register(self, minutes_ago=0, expected_duration=60, **overrides):
        visitor, _ = lifecycle.register_visitor(
            _fields(**overrides),
            expected_duration=expected_duration,
            now=timezone.now() - timedelta(minutes=minutes_ago),
        )
        return visitor

    def test_requires_authentication(self):
        self.client.force_authenticate(None)

        response = self.client.get("/api/visitors/")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_visitor(self):
        payload = _fields(expected_duration=90)

        response = self.client.post("/api/visitors/", payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["message"], "Visitor registered successfully")
        visitor = response.data["visitor"]
        self.assertEqual(visitor["status"], "Checked In")
        self.assertEqual(visitor["expected_duration"], 90)
        self.assertTrue(visitor["qr_code"].startswith("data:image/png;base64,"))
        self.assertEqual(Visitor.objects.get().pass_id, visitor["pass_id"])

    def test_register_visitor_missing_fields(self):
        response = self.client.post("/api/visitors/", {"full_name": "Jane"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Missing required fields", response.data["detail"])
        self.assertEqual(Visitor.objects.count(), 0)

    def test_register_visitor_invalid_email(self):
        response = self.client.post("/api/visitors/", _fields(email="not-an-email"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", response.data)

    def test_list_visitors_with_status_filter(self):
        staying = self._register(full_name="Alice Achieng")
        leaving = self._register(full_name="Brian Mutua")
        lifecycle.check_out(leaving.id)

        response = self.client.get("/api/visitors/", {"status": "Checked In", "limit": 5})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data["data"]], [staying.id])
        self.assertEqual(response.data["pagination"]["total"], 1)
        self.assertEqual(response.data["pagination"]["per_page"], 5)

    def test_list_visitors_rejects_bad_page(self):
        response = self.client.get("/api/visitors/", {"page": "zero"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_visitors_rejects_huge_page_and_limit(self):
        response = self.client.get("/api/visitors/", {"page": str(10**20), "limit": 10})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get("/api/visitors/", {"limit": str(10**20)})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "limit must be at most 100")

    def test_list_visitors_rejects_unknown_status(self):
        response = self.client.get("/api/visitors/", {"status": "CheckedIn"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Unknown visitor status: CheckedIn")

    def test_register_visitor_rejects_oversized_expected_duration(self):
        response = self.client.post("/api/visitors/", _fields(expected_duration=10**20), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("expected_duration", response.data)
        self.assertEqual(Visitor.objects.count(), 0)

    def test_update_expected_duration_rejects_oversized_value(self):
        visitor = self._register()

        response = self.client.patch(
            f"/api/visitors/{visitor.id}/expected-duration/",
            {"expected_duration": 10**20},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("expected_duration", response.data)
        visitor.refresh_from_db()
        self.assertEqual(visitor.expected_duration, 60)

    def test_retrieve_unknown_visitor(self):
        response = self.client.get("/api/visitors/424242/")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["detail"], "Visitor not found")

    def test_checkout_then_conflict(self):
        visitor = self._register(minutes_ago=40, expected_duration=30)

        response = self.client.put(f"/api/visitors/{visitor.id}/checkout/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["duration"], 40)
        self.assertTrue(response.data["is_overstayed"])
        self.assertEqual(response.data["overstay_minutes"], 10)
        self.assertEqual(response.data["visitor"]["status"], "Checked Out")

        response = self.client.put(f"/api/visitors/{visitor.id}/checkout/")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["detail"], "Visitor is not currently checked in")

    def test_update_expected_duration(self):
        visitor = self._register()

        response = self.client.patch(
            f"/api/visitors/{visitor.id}/expected-duration/",
            {"expected_duration": 120, "notes": "Board meeting"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["expected_duration"], 120)
        self.assertEqual(response.data["notes"], "Board meeting")

        response = self.client.patch(
            f"/api/visitors/{visitor.id}/expected-duration/",
            {"expected_duration": 0},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_overstayed_sweep_endpoint(self):
        self._register(minutes_ago=90, expected_duration=60, full_name="Late Visitor")
        self._register(minutes_ago=50, expected_duration=60, full_name="Almost Done")
        self._register(minutes_ago=5, expected_duration=60, full_name="Just Arrived")

        response = self.client.get("/api/visitors/alerts/overstayed/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data["counts"],
            {"checked": 3, "overstayed": 1, "warnings": 1, "new_alerts": 2},
        )
        self.assertEqual(response.data["overstayed"][0]["visitor"]["full_name"], "Late Visitor")
        self.assertEqual(response.data["overstayed"][0]["overstay_minutes"], 30)
        self.assertEqual(response.data["warnings"][0]["visitor"]["full_name"], "Almost Done")
        self.assertEqual(response.data["warnings"][0]["remaining_minutes"], 10)

    def test_acknowledge_alert_defaults_to_request_user(self):
        visitor = self._register(minutes_ago=90, expected_duration=60)
        lifecycle.check_overstayed_visitors()
        alert = visitor.alert_history.get()
        url = f"/api/visitors/{visitor.id}/alerts/{alert.id}/acknowledge/"

        response = self.client.post(url, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["acknowledged"])
        self.assertEqual(response.data["acknowledged_by"], "frontdesk")

        response = self.client.post(url, {"acknowledged_by": "Principal"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["acknowledged_by"], "Principal")
        self.assertEqual(VisitorAlert.objects.count(), 1)

    def test_acknowledge_unknown_alert(self):
        visitor = self._register()

        response = self.client.post(f"/api/visitors/{visitor.id}/alerts/77/acknowledge/", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["detail"], "Alert not found")

    def test_duration_analytics_endpoint_with_no_data(self):
        response = self.client.get("/api/visitors/analytics/duration/", {"startDate": "2026-01-01", "endDate": "2026-01-31"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["statistics"]["overstay_rate"], 0)
        self.assertEqual(len(response.data["histogram"]), 7)

    def test_visitor_report_requires_dates(self):
        response = self.client.get("/api/visitors/reports/")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Please provide startDate and endDate")

    def test_visitor_report_and_daily_counts(self):
        visitor = self._register()
        today = timezone.localdate().isoformat()

        response = self.client.get("/api/visitors/reports/", {"startDate": today, "endDate": today})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["data"][0]["id"], visitor.id)

        response = self.client.get("/api/visitors/reports/daily/", {"startDate": today, "endDate": today})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"], [{"date": today, "visitors": 1}])


class CheckOverstayedCommandTests(TestCase):
    def test_command_reports_sweep_summary(self):
        now = timezone.now()
        lifecycle.register_visitor(_fields(), expected_duration=60, now=now - timedelta(minutes=90))
        lifecycle.register_visitor(_fields(full_name="John Kamau"), expected_duration=60, now=now - timedelta(minutes=50))

        stdout = StringIO()
        call_command("visitors_check_overstayed", "--verbose-list", stdout=stdout)

        output = stdout.getvalue()
        self.assertIn("Checked 2 visitors: 1 overstayed, 1 approaching limit, 2 new alerts", output)
        self.assertIn("OVERSTAY", output)
        self.assertIn("name=John Kamau", output)
        self.assertEqual(VisitorAlert.objects.count(), 2)
