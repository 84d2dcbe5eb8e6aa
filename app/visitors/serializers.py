from rest_framework import serializers

from .models import DEFAULT_EXPECTED_DURATION, MAX_EXPECTED_DURATION, Visitor, VisitorAlert


class VisitorAlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = VisitorAlert
        fields = [
            'id',
            'alert_type',
            'message',
            'triggered_at',
            'acknowledged',
            'acknowledged_by',
            'acknowledged_at',
        ]


class VisitorSerializer(serializers.ModelSerializer):
    alert_history = VisitorAlertSerializer(many=True, read_only=True)

    class Meta:
        model = Visitor
        fields = [
            'id',
            'full_name',
            'id_number',
            'phone_number',
            'email',
            'company',
            'purpose',
            'host_name',
            'pass_id',
            'visit_date',
            'status',
            'check_in_time',
            'check_out_time',
            'expected_duration',
            'actual_duration',
            'is_overstayed',
            'overstay_minutes',
            'alerts_triggered',
            'alert_history',
            'last_activity_time',
            'location',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class VisitorRegistrationSerializer(serializers.Serializer):
    # Presence of the required fields is enforced by the lifecycle service.
    full_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    id_number = serializers.CharField(required=False, allow_blank=True, max_length=64)
    phone_number = serializers.CharField(required=False, allow_blank=True, max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True)
    company = serializers.CharField(required=False, allow_blank=True, max_length=255)
    purpose = serializers.CharField(required=False, allow_blank=True, max_length=255)
    host_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    location = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)
    expected_duration = serializers.IntegerField(
        required=False,
        default=DEFAULT_EXPECTED_DURATION,
        min_value=1,
        max_value=MAX_EXPECTED_DURATION,
    )


class ExpectedDurationSerializer(serializers.Serializer):
    expected_duration = serializers.IntegerField(min_value=1, max_value=MAX_EXPECTED_DURATION)
    notes = serializers.CharField(required=False, allow_blank=True)


class AcknowledgeAlertSerializer(serializers.Serializer):
    acknowledged_by = serializers.CharField(required=False, allow_blank=True, max_length=150)
