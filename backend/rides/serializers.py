from django.utils import timezone
from rest_framework import serializers

from dispatch.state_machines.request_state import DRIVER_CANCELLATION_REASONS
from users.serializers import DriverPublicSerializer

from .models import DriverRating, Offer, RequestStop, ServiceLocation, ServiceRequest, StopItem


class StopItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = StopItem
        fields = ['id', 'description', 'quantity', 'is_checked']
        read_only_fields = ['id', 'is_checked']


class RequestStopSerializer(serializers.ModelSerializer):
    items = StopItemSerializer(many=True, required=False)

    class Meta:
        model = RequestStop
        fields = ['id', 'order', 'name', 'address', 'lat', 'lng', 'instructions', 'is_completed', 'completed_at', 'items']
        read_only_fields = ['id', 'order', 'is_completed', 'completed_at']


class OfferSerializer(serializers.ModelSerializer):
    driver = DriverPublicSerializer(read_only=True)

    class Meta:
        model = Offer
        fields = ['id', 'request', 'driver', 'offer_type', 'offered_price', 'message', 'status', 'expires_at', 'created_at']
        read_only_fields = fields


class ServiceRequestSerializer(serializers.ModelSerializer):
    """
    Read shape of a request. PINs are only shown to the client who owns it.
    """
    stops = RequestStopSerializer(many=True, read_only=True)
    assigned_driver = DriverPublicSerializer(read_only=True)
    remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = ServiceRequest
        fields = [
            'id', 'client', 'assigned_driver', 'service_type', 'mandadito_type', 'status', 'tracking_step',
            'origin_lat', 'origin_lng', 'origin_address',
            'destination_lat', 'destination_lng', 'destination_address',
            'delivery_references', 'notes', 'municipio',
            'offered_price', 'estimated_price', 'final_price',
            'boarding_pin', 'delivery_pin',
            'payment_method', 'payment_amount', 'payment_confirmed_at',
            'version', 'request_expires_at', 'remaining_seconds',
            'created_at', 'assigned_at', 'started_at', 'completed_at',
            'cancelled_at', 'cancellation_reason', 'stops',
        ]
        read_only_fields = fields

    def get_remaining_seconds(self, obj):
        return obj.remaining_seconds(timezone.now())

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get('request')
        if request is None or request.user.pk != instance.client_id:
            data.pop('boarding_pin', None)
            data.pop('delivery_pin', None)
        return data


class RadarRequestSerializer(ServiceRequestSerializer):
    distance_km = serializers.SerializerMethodField()

    class Meta(ServiceRequestSerializer.Meta):
        fields = ServiceRequestSerializer.Meta.fields + ['distance_km']
        read_only_fields = fields

    def get_distance_km(self, obj):
        distances = self.context.get('distances') or {}
        distance = distances.get(obj.pk)
        return round(distance, 2) if distance is not None else None


class CreateRideSerializer(serializers.Serializer):
    service_type = serializers.ChoiceField(
        choices=[ServiceRequest.ServiceType.TAXI, ServiceRequest.ServiceType.MOTO_RIDE]
    )
    origin_lat = serializers.FloatField(min_value=-90, max_value=90)
    origin_lng = serializers.FloatField(min_value=-180, max_value=180)
    origin_address = serializers.CharField(required=False, allow_blank=True, default="")
    destination_lat = serializers.FloatField(min_value=-90, max_value=90)
    destination_lng = serializers.FloatField(min_value=-180, max_value=180)
    destination_address = serializers.CharField(required=False, allow_blank=True, default="")
    offered_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=1, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    municipio = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['service_type'] == ServiceRequest.ServiceType.TAXI and attrs.get('offered_price') is None:
            raise serializers.ValidationError({"offered_price": "Indica cuánto ofreces por el viaje"})
        return attrs


class PaymentDetailsSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=1)
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    instructions = serializers.CharField(required=False, allow_blank=True, default="")


class CreateMandaditoSerializer(serializers.Serializer):
    mandadito_type = serializers.ChoiceField(choices=ServiceRequest.MandaditoType.choices)
    stops = RequestStopSerializer(many=True, required=False)
    destination_lat = serializers.FloatField(min_value=-90, max_value=90)
    destination_lng = serializers.FloatField(min_value=-180, max_value=180)
    destination_address = serializers.CharField(required=False, allow_blank=True, default="")
    delivery_references = serializers.CharField(required=False, allow_blank=True, default="")
    payment = PaymentDetailsSerializer(required=False)
    offered_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=1, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    municipio = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        mandadito_type = attrs['mandadito_type']
        stops = attrs.get('stops') or []
        if mandadito_type == ServiceRequest.MandaditoType.SHOPPING and not stops:
            raise serializers.ValidationError({"stops": "Agrega al menos una parada"})
        if mandadito_type == ServiceRequest.MandaditoType.DELIVERY and not stops:
            raise serializers.ValidationError({"stops": "Indica dónde recoger"})
        if mandadito_type == ServiceRequest.MandaditoType.PAYMENT and not attrs.get('payment'):
            raise serializers.ValidationError({"payment": "Indica el monto y la referencia del pago"})
        return attrs


class CreateOfferSerializer(serializers.Serializer):
    offered_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    message = serializers.CharField(required=False, allow_blank=True, default="")


class AcceptOfferSerializer(serializers.Serializer):
    offer_id = serializers.IntegerField()
    version = serializers.IntegerField(required=False)


class PinSerializer(serializers.Serializer):
    pin = serializers.CharField(max_length=10)


class ItemCheckSerializer(serializers.Serializer):
    checked = serializers.BooleanField(default=True)


class PaymentConfirmSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=ServiceRequest.PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)


class DriverCancelSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=list(DRIVER_CANCELLATION_REASONS))


class RatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = DriverRating
        fields = ['id', 'request', 'driver', 'client', 'rating', 'comment', 'created_at']
        read_only_fields = ['id', 'request', 'driver', 'client', 'created_at']


class RatingStatsQuerySerializer(serializers.Serializer):
    months = serializers.IntegerField(min_value=1, max_value=24, default=6)


class ServiceLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceLocation
        fields = ['lat', 'lng', 'heading', 'speed', 'accuracy', 'created_at']
