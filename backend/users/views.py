import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework import generics, mixins, permissions, status, viewsets
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from drivers.selection import can_toggle_available
from movix_backend.errors import ServiceError
from routing.gps_filter import GpsFix, next_bearing, should_persist, validate_fix

from .models import ClientAddress, User
from .otp_service import OtpError, OtpService
from .permissions import IsDriver
from .serializers import (
    ClientAddressSerializer,
    LocationPingSerializer,
    RegisterSerializer,
    SendOtpSerializer,
    UserSerializer,
    VerifyOtpSerializer,
)

logger = logging.getLogger(__name__)


class SendOtpView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = SendOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        otp = OtpService().send_code(data['email'], data['name'], data['type'])

        body = {"success": True, "message": "Código enviado a tu correo"}
        # Shown in the app while the sending domain is not verified
        if settings.OTP_EXPOSE_DEV_CODE:
            body["devCode"] = otp.code
        return Response(body)


class VerifyOtpView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = VerifyOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            OtpService().verify_code(data['email'], data['code'], data['type'])
        except OtpError as e:
            extra = {"expired": True} if e.expired else {}
            raise ServiceError(e.message, code="INVALID_OTP", **extra)

        return Response({"success": True, "verified": True})


class RegisterView(APIView):
    """
    Creates the account once the email was proven with a verified OTP.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        email = str(request.data.get('email', '')).lower()
        if not OtpService.has_verified_code(email):
            raise ServiceError("Debes verificar tu correo primero", code="EMAIL_NOT_VERIFIED")

        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            user = serializer.save()
            OtpService.clear_codes(email)

        logger.info(f"Registered {user.email} as {user.role}")
        return Response(
            {
                "success": True,
                "user": UserSerializer(user, context={"request": request}).data,
                "requiresApproval": not user.is_approved,
            },
            status=status.HTTP_201_CREATED,
        )


class MeView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_object(self):
        return self.request.user


class AvailabilityView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDriver]

    def post(self, request):
        user = request.user
        if not can_toggle_available(user.snapshot()):
            raise ServiceError(
                "Tu cuenta no puede recibir servicios (KYC pendiente o comisiones vencidas)",
                code="NOT_ALLOWED",
                status_code=status.HTTP_403_FORBIDDEN,
            )

        requested = request.data.get('is_available')
        user.is_available = (not user.is_available) if requested is None else bool(requested)
        user.save(update_fields=['is_available'])
        return Response({"success": True, "is_available": user.is_available})


class LocationPingView(APIView):
    """
    GPS ping from a driver. Noisy fixes are refused, the profile location
    only moves on significant movement.
    """
    permission_classes = [permissions.IsAuthenticated, IsDriver]

    def post(self, request):
        serializer = LocationPingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user
        now = timezone.now()

        fix = GpsFix(
            lat=data['lat'],
            lon=data['lng'],
            timestamp=now,
            accuracy=data.get('accuracy'),
            heading=data.get('heading'),
            speed=data.get('speed'),
        )
        last = None
        if user.location is not None and user.location_updated_at is not None:
            last = GpsFix(lat=user.current_lat, lon=user.current_lng, timestamp=user.location_updated_at)

        valid, reason = validate_fix(fix, last)
        if not valid:
            logger.info(f"[GPS] Rejected fix for driver {user.pk}: {reason}")
            return Response({"success": False, "accepted": False, "reason": reason})

        persisted = should_persist(fix, last)
        if persisted:
            user.current_heading = next_bearing(fix, last, user.current_heading)
            user.current_lat = fix.lat
            user.current_lng = fix.lon
            user.location_updated_at = now
            user.save(update_fields=['current_lat', 'current_lng', 'current_heading', 'location_updated_at'])

        service_id = data.get('service_id')
        if service_id:
            from rides.models import ServiceLocation, ServiceRequest

            if ServiceRequest.objects.filter(pk=service_id, assigned_driver=user).exists():
                ServiceLocation.objects.create(
                    service_id=service_id,
                    driver=user,
                    lat=fix.lat,
                    lng=fix.lon,
                    heading=user.current_heading,
                    speed=fix.speed,
                    accuracy=fix.accuracy,
                )

        return Response({"success": True, "accepted": True, "persisted": persisted, "heading": user.current_heading})


class ClientAddressViewSet(mixins.ListModelMixin,
                           mixins.CreateModelMixin,
                           mixins.DestroyModelMixin,
                           viewsets.GenericViewSet):
    serializer_class = ClientAddressSerializer

    def get_queryset(self):
        return ClientAddress.objects.filter(user=self.request.user)

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)
