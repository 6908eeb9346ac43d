from rest_framework import serializers

from dispatch.pricing import COMMISSION_RATES, PERIOD_ALL, PERIOD_CURRENT, PERIOD_PREVIOUS
from users.models import User

from .models import BalanceTransaction, CommissionPeriod

SERVICE_TYPE_CHOICES = list(COMMISSION_RATES)


class CommissionReportQuerySerializer(serializers.Serializer):
    service_type = serializers.ChoiceField(choices=SERVICE_TYPE_CHOICES, default="taxi")
    period = serializers.ChoiceField(choices=[PERIOD_CURRENT, PERIOD_PREVIOUS, PERIOD_ALL], default=PERIOD_CURRENT)


class MarkPaidSerializer(serializers.Serializer):
    driver_id = serializers.IntegerField()
    service_type = serializers.ChoiceField(choices=SERVICE_TYPE_CHOICES)
    period = serializers.ChoiceField(choices=[PERIOD_CURRENT, PERIOD_PREVIOUS], default=PERIOD_CURRENT)


class CommissionPeriodSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionPeriod
        fields = [
            'id', 'driver', 'service_type', 'period_start', 'period_end',
            'total_services', 'total_amount', 'status', 'paid_at',
        ]


class AddBalanceSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    description = serializers.CharField(max_length=255)


class BalanceTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = BalanceTransaction
        fields = ['id', 'driver', 'amount', 'description', 'balance_after', 'created_at']


class AdminUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'phone_number', 'role', 'is_approved', 'is_available',
            'kyc_status', 'commission_status', 'balance', 'rating_avg', 'rating_count',
            'municipio', 'date_joined',
        ]
