from __future__ import annotations

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from visitors.exceptions import ConflictError, NotFoundError, StoreError, ValidationError, VisitorError
from visitors.serializers import (
    AcknowledgeAlertSerializer,
    ExpectedDurationSerializer,
    VisitorAlertSerializer,
    VisitorRegistrationSerializer,
    VisitorSerializer,
)
from visitors.services import analytics, lifecycle


logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _parse_csv_query_list(values: list[str]) -> list[str]:
    items = []
    for value in values:
        items.extend(item.strip() for item in value.split(",") if item.strip())
    return items


def _sweep_entry(entry: dict, *extra_fields: str) -> dict:
    data = {
        "visitor": VisitorSerializer(entry["visitor"]).data,
        "current_duration_minutes": entry["current_duration_minutes"],
        "alert_created": entry["alert_created"],
    }
    for name in extra_fields:
        data[name] = entry[name]
    return data


class VisitorViewSet(viewsets.ViewSet):
    lookup_value_regex = r"[0-9]+"

    def handle_exception(self, exc):
        if isinstance(exc, VisitorError):
            logger.info("Visitor request rejected", extra={"error": type(exc).__name__, "detail": exc.message})
            return Response({"detail": exc.message}, status=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST))
        return super().handle_exception(exc)

    def list(self, request):
        params = request.query_params
        visitors, pagination = lifecycle.list_visitors(
            search=params.get("search", ""),
            statuses=_parse_csv_query_list(params.getlist("status")),
            company=params.get("company", ""),
            purpose=params.get("purpose", ""),
            sort_field=params.get("sortField", "createdAt"),
            sort_order=params.get("sortOrder", "desc"),
            page=params.get("page", 1),
            limit=params.get("limit", 10),
        )
        return Response({"data": VisitorSerializer(visitors, many=True).data, "pagination": pagination})

    def create(self, request):
        serializer = VisitorRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fields = dict(serializer.validated_data)
        expected_duration = fields.pop("expected_duration")

        visitor, qr_code = lifecycle.register_visitor(fields, expected_duration=expected_duration)
        payload = VisitorSerializer(visitor).data
        payload["qr_code"] = qr_code
        return Response(
            {"message": "Visitor registered successfully", "visitor": payload},
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, pk=None):
        visitor = lifecycle.get_visitor(pk)
        return Response(VisitorSerializer(visitor).data)

    @action(detail=True, methods=["put", "patch"])
    def checkout(self, request, pk=None):
        visitor = lifecycle.check_out(pk)
        return Response(
            {
                "message": "Visitor checked out successfully",
                "visitor": VisitorSerializer(visitor).data,
                "duration": visitor.actual_duration,
                "is_overstayed": visitor.is_overstayed,
                "overstay_minutes": visitor.overstay_minutes,
            }
        )

    @action(detail=True, methods=["patch"], url_path="expected-duration")
    def expected_duration(self, request, pk=None):
        serializer = ExpectedDurationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        visitor = lifecycle.update_expected_duration(
            pk,
            serializer.validated_data["expected_duration"],
            notes=serializer.validated_data.get("notes"),
        )
        return Response(VisitorSerializer(visitor).data)

    @action(detail=True, methods=["post"], url_path=r"alerts/(?P<alert_id>[0-9]+)/acknowledge")
    def acknowledge_alert(self, request, pk=None, alert_id=None):
        serializer = AcknowledgeAlertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        acknowledged_by = serializer.validated_data.get("acknowledged_by") or request.user.get_username()

        alert = lifecycle.acknowledge_alert(pk, alert_id, acknowledged_by)
        return Response(VisitorAlertSerializer(alert).data)

    @action(detail=False, methods=["get"], url_path="alerts/overstayed")
    def overstayed(self, request):
        result = lifecycle.check_overstayed_visitors()
        return Response(
            {
                "overstayed": [_sweep_entry(entry, "overstay_minutes") for entry in result.overstayed],
                "warnings": [_sweep_entry(entry, "remaining_minutes") for entry in result.warnings],
                "counts": result.counts,
            }
        )

    @action(detail=False, methods=["get"], url_path="analytics/duration")
    def duration_analytics(self, request):
        params = request.query_params
        return Response(analytics.duration_analytics(params.get("startDate"), params.get("endDate")))

    @action(detail=False, methods=["get"])
    def reports(self, request):
        params = request.query_params
        visitors = analytics.visitor_report(params.get("startDate"), params.get("endDate"))
        return Response({"count": len(visitors), "data": VisitorSerializer(visitors, many=True).data})

    @action(detail=False, methods=["get"], url_path="reports/daily")
    def daily_reports(self, request):
        params = request.query_params
        return Response({"data": analytics.daily_visitor_counts(params.get("startDate"), params.get("endDate"))})
