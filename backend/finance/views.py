from django.db.models import Q
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from users.models import User
from users.permissions import IsAdminRole

from . import services
from .serializers import (
    AddBalanceSerializer,
    AdminUserSerializer,
    BalanceTransactionSerializer,
    CommissionPeriodSerializer,
    CommissionReportQuerySerializer,
    MarkPaidSerializer,
)

ADMIN_PERMISSIONS = [permissions.IsAuthenticated, IsAdminRole]


class CommissionReportView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        query = CommissionReportQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = services.commission_report(query.validated_data['service_type'], query.validated_data['period'])
        return Response(report)


class MarkCommissionPaidView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        driver = User.objects.get(pk=data['driver_id'])
        period = services.mark_period_paid(driver, data['service_type'], data['period'], request.user)
        return Response(CommissionPeriodSerializer(period).data)


class DashboardView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(services.dashboard_summary())


class AdminUserViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.DestroyModelMixin,
                       viewsets.GenericViewSet):
    """
    Admin user management.
    ?role= filters by role, ?search= matches name or email.
    """
    serializer_class = AdminUserSerializer
    permission_classes = ADMIN_PERMISSIONS

    def get_queryset(self):
        queryset = User.objects.all().order_by('-date_joined')
        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(full_name__icontains=search) | Q(email__icontains=search))
        return queryset

    def perform_destroy(self, instance):
        services.delete_user(instance, self.request.user)

    @action(detail=True, methods=['post'], url_path='toggle-block')
    def toggle_block(self, request, pk=None):
        driver = services.toggle_block(self.get_object())
        return Response(self.get_serializer(driver).data)

    @action(detail=True, methods=['post'], url_path='add-balance')
    def add_balance(self, request, pk=None):
        serializer = AddBalanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = services.add_balance(
            self.get_object(), serializer.validated_data['amount'], serializer.validated_data['description'], request.user
        )
        return Response(BalanceTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)
