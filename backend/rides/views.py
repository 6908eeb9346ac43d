from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from dispatch.state_machines.request_state import is_final
from drivers.selection import build_radar, can_operate
from movix_backend.errors import ServiceError
from routing.eta_service import format_eta
from routing.geocoding import GeocodingError, NominatimClient
from routing.mapbox_client import MapboxError
from users.models import User
from users.permissions import IsCliente, IsDriver
from users.serializers import DriverPublicSerializer, DriverVehicleSerializer

from . import routes, services
from .models import Offer, RequestStop, ServiceLocation, ServiceRequest, StopItem
from .serializers import (
    AcceptOfferSerializer,
    CreateMandaditoSerializer,
    CreateOfferSerializer,
    CreateRideSerializer,
    DriverCancelSerializer,
    ItemCheckSerializer,
    OfferSerializer,
    PaymentConfirmSerializer,
    PinSerializer,
    RadarRequestSerializer,
    RatingSerializer,
    RatingStatsQuerySerializer,
    ServiceLocationSerializer,
    ServiceRequestSerializer,
)


class ServiceRequestViewSet(mixins.ListModelMixin,
                            mixins.RetrieveModelMixin,
                            viewsets.GenericViewSet):
    """
    Service requests.
    - Client: create, list own, offers, accept, cancel, track, rate
    - Driver: radar, offer, advance, PINs, payment, complete, cancel
    - Admin: list all
    """
    serializer_class = ServiceRequestSerializer

    def get_queryset(self):
        user = self.request.user
        queryset = services.requests_for_user(user)
        if user.is_driver and self.action not in ('list', 'active'):
            # Drivers can open pending requests they see on the radar
            queryset = ServiceRequest.objects.filter(
                Q(assigned_driver=user) | Q(status=ServiceRequest.Status.PENDING)
            )
        status_filter = self.request.query_params.get('status')
        if status_filter and self.action == 'list':
            queryset = queryset.filter(status=status_filter)
        return queryset.select_related('assigned_driver__vehicle').prefetch_related('stops__items')

    def create(self, request):
        if request.user.role != User.Roles.CLIENTE:
            raise ServiceError("Solo clientes pueden solicitar servicios", code="INVALID_ROLE", status_code=403)
        serializer = CreateRideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        service = services.create_ride(request.user, data['service_type'], data)
        return Response(self.get_serializer(service).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsCliente])
    def mandadito(self, request):
        serializer = CreateMandaditoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = services.create_mandadito(request.user, serializer.validated_data)
        return Response(self.get_serializer(service).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def active(self, request):
        queryset = services.active_requests_for_user(request.user)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['get'], permission_classes=[permissions.IsAuthenticated, IsDriver])
    def radar(self, request):
        driver = request.user
        snapshot = driver.snapshot()
        if not can_operate(snapshot) or not driver.is_available:
            raise ServiceError(
                "Activa tu disponibilidad para ver solicitudes",
                code="NOT_AVAILABLE",
                status_code=status.HTTP_403_FORBIDDEN,
            )

        now = timezone.now()
        entries = build_radar(snapshot, list(services.radar_candidates(driver, now)), now, services.driver_policy())
        context = self.get_serializer_context()
        context['distances'] = {entry.request.pk: entry.distance_km for entry in entries}
        data = RadarRequestSerializer([entry.request for entry in entries], many=True, context=context).data
        return Response(data)

    # --- Offers ---

    @action(detail=True, methods=['get', 'post'])
    def offers(self, request, pk=None):
        service = self.get_object()

        if request.method == 'GET':
            queryset = service.offers.select_related('driver__vehicle')
            if request.user.is_driver:
                queryset = queryset.filter(driver=request.user)
            elif request.user.pk != service.client_id and not request.user.is_admin_role:
                raise ServiceError("No eres el cliente de esta solicitud", code="NOT_OWNER", status_code=403)
            return Response(OfferSerializer(queryset, many=True, context=self.get_serializer_context()).data)

        if not request.user.is_driver:
            raise ServiceError("Solo conductores pueden ofertar", code="INVALID_ROLE", status_code=403)
        serializer = CreateOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        offer = services.create_offer(
            service.pk, request.user, serializer.validated_data['offered_price'], serializer.validated_data['message']
        )
        return Response(OfferSerializer(offer, context=self.get_serializer_context()).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='accept-offer', permission_classes=[permissions.IsAuthenticated, IsCliente])
    def accept_offer(self, request, pk=None):
        serializer = AcceptOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = services.accept_offer(
            pk, serializer.validated_data['offer_id'], request.user, serializer.validated_data.get('version')
        )
        return Response({"success": True, "request": self.get_serializer(service).data})

    # --- Driver flow ---

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsDriver])
    def advance(self, request, pk=None):
        service = services.advance_step(pk, request.user)
        return Response(self.get_serializer(service).data)

    @action(detail=True, methods=['post'], url_path='boarding-pin', permission_classes=[permissions.IsAuthenticated, IsDriver])
    def boarding_pin(self, request, pk=None):
        serializer = PinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = services.verify_boarding_pin(pk, request.user, serializer.validated_data['pin'])
        return Response({"success": True, "request": self.get_serializer(service).data})

    @action(detail=True, methods=['post'], url_path='confirm-payment', permission_classes=[permissions.IsAuthenticated, IsDriver])
    def confirm_payment(self, request, pk=None):
        serializer = PaymentConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = services.confirm_payment(
            pk, request.user, serializer.validated_data['method'], serializer.validated_data['amount']
        )
        return Response({"success": True, "request": self.get_serializer(service).data})

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsDriver])
    def complete(self, request, pk=None):
        service = services.complete_ride(pk, request.user)
        routes.forget(service.pk)
        return Response({"success": True, "request": self.get_serializer(service).data})

    @action(detail=True, methods=['post'], url_path='delivery-pin', permission_classes=[permissions.IsAuthenticated, IsDriver])
    def delivery_pin(self, request, pk=None):
        serializer = PinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service, earnings = services.verify_delivery_pin(pk, request.user, serializer.validated_data['pin'])
        routes.forget(service.pk)
        return Response({"success": True, "earnings": earnings, "request": self.get_serializer(service).data})

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        if request.user.is_driver:
            serializer = DriverCancelSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            service = services.cancel_by_driver(pk, request.user, serializer.validated_data['reason'])
        else:
            service = services.cancel_by_client(pk, request.user)
        routes.forget(service.pk)
        return Response({"success": True, "request": self.get_serializer(service).data})

    # --- Client views ---

    @action(detail=True, methods=['get'])
    def tracking(self, request, pk=None):
        service = self.get_object()
        if request.user.pk not in (service.client_id, service.assigned_driver_id) and not request.user.is_admin_role:
            raise ServiceError("No tienes acceso a este servicio", code="NOT_OWNER", status_code=403)

        driver = service.assigned_driver
        latest = ServiceLocation.objects.filter(service=service).first()
        driver_location = None
        if latest is not None:
            driver_location = ServiceLocationSerializer(latest).data
        elif driver is not None and driver.location is not None:
            driver_location = {
                "lat": driver.current_lat,
                "lng": driver.current_lng,
                "heading": driver.current_heading,
                "created_at": driver.location_updated_at,
            }

        vehicle = getattr(driver, 'vehicle', None) if driver is not None else None
        return Response({
            "request": self.get_serializer(service).data,
            "driver": DriverPublicSerializer(driver, context=self.get_serializer_context()).data if driver else None,
            "vehicle": DriverVehicleSerializer(vehicle).data if vehicle else None,
            "driver_location": driver_location,
            "boarding_pin": service.boarding_pin if request.user.pk == service.client_id else None,
        })

    @action(detail=True, methods=['get'])
    def route(self, request, pk=None):
        """
        Route from the driver to the pickup (or to the destination once the
        passenger is on board) with ETA.
        """
        service = self.get_object()
        if request.user.pk not in (service.client_id, service.assigned_driver_id):
            raise ServiceError("No tienes acceso a este servicio", code="NOT_OWNER", status_code=403)
        if is_final(service.status) or service.assigned_driver is None:
            routes.forget(service.pk)
            raise ServiceError("El servicio no está activo", code="NOT_ACTIVE")

        driver_position = service.assigned_driver.location
        if driver_position is None:
            raise ServiceError("Ubicación del conductor no disponible", code="NO_DRIVER_LOCATION", retryable=True)

        try:
            phase, snapshot = routes.current_route(service, driver_position, now=timezone.now())
        except ValueError:
            raise ServiceError("Mapbox no está configurado", code="CONFIG_ERROR", status_code=500)
        except MapboxError as e:
            raise ServiceError(str(e), code="ROUTE_ERROR", status_code=502, retryable=True)

        return Response({
            "phase": phase.value,
            "geometry": snapshot.route.geometry,
            "eta_minutes": snapshot.eta_minutes,
            "eta_text": format_eta(snapshot.eta_minutes),
            "distance_km": snapshot.distance_km,
            "is_off_route": snapshot.is_off_route,
            "recalculated": snapshot.recalculated,
        })

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsCliente])
    def rate(self, request, pk=None):
        serializer = RatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rating = services.rate_driver(
            pk, request.user, serializer.validated_data['rating'], serializer.validated_data.get('comment', '')
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)


class OfferViewSet(viewsets.GenericViewSet):
    serializer_class = OfferSerializer

    def get_queryset(self):
        user = self.request.user
        return Offer.objects.filter(Q(driver=user) | Q(request__client=user))

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsCliente])
    def reject(self, request, pk=None):
        offer = services.reject_offer(pk, request.user)
        return Response(self.get_serializer(offer).data)

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsCliente])
    def counter(self, request, pk=None):
        serializer = CreateOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        offer = services.counter_offer(
            pk, request.user, serializer.validated_data['offered_price'], serializer.validated_data['message']
        )
        return Response(self.get_serializer(offer).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='accept-counter', permission_classes=[permissions.IsAuthenticated, IsDriver])
    def accept_counter(self, request, pk=None):
        service = services.accept_counter_offer(pk, request.user)
        return Response({"success": True, "request": ServiceRequestSerializer(service, context=self.get_serializer_context()).data})


class StopViewSet(viewsets.GenericViewSet):
    queryset = RequestStop.objects.all()

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsDriver])
    def complete(self, request, pk=None):
        stop = services.complete_stop(pk, request.user)
        return Response({"success": True, "id": stop.pk, "is_completed": stop.is_completed})


class StopItemViewSet(viewsets.GenericViewSet):
    queryset = StopItem.objects.all()

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated, IsDriver])
    def check(self, request, pk=None):
        serializer = ItemCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = services.check_item(pk, request.user, serializer.validated_data['checked'])
        return Response({"success": True, "id": item.pk, "is_checked": item.is_checked})


class ServerTimeView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        now = timezone.now()
        return Response({"server_time": now.isoformat(), "epoch_ms": int(now.timestamp() * 1000)})


class DriverRatingsView(APIView):
    """
    Public rating summary of a driver: aggregate, star distribution and
    monthly averages.
    """

    def get(self, request, driver_id):
        driver = get_object_or_404(User, pk=driver_id, role__in=[User.Roles.TAXI, User.Roles.MANDADITO])
        query = RatingStatsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        months = query.validated_data['months']
        recent = driver.ratings_received.all()[:20]
        return Response({
            "driver_id": driver.pk,
            "rating_avg": driver.rating_avg,
            "rating_count": driver.rating_count,
            "distribution": services.rating_distribution(driver),
            "monthly": services.monthly_rating_stats(driver, months=months),
            "recent": RatingSerializer(recent, many=True).data,
        })


class ReverseGeocodeView(APIView):
    def get(self, request):
        try:
            lat = float(request.query_params.get('lat', 0))
            lng = float(request.query_params.get('lng', 0))
        except ValueError:
            raise ServiceError("Coordenadas inválidas", code="INVALID_COORDINATES")

        address = NominatimClient().reverse(lat, lng)
        if address is None:
            return Response({"full": None, "short": "Ubicación detectada", "street": "", "area": ""})
        return Response({"full": address.full, "short": address.short, "street": address.street, "area": address.area})


class PlaceSearchView(APIView):
    def get(self, request):
        query = request.query_params.get('q', '')
        try:
            places = NominatimClient().search(query)
        except GeocodingError as e:
            raise ServiceError(str(e), code="GEOCODING_ERROR", status_code=502, retryable=True)
        return Response([{"label": place.label, "lat": place.lat, "lng": place.lon} for place in places])
