from rest_framework import serializers
from phonenumber_field.serializerfields import PhoneNumberField

from .models import ClientAddress, DriverVehicle, OtpCode, User


class DriverVehicleSerializer(serializers.ModelSerializer):
    class Meta:
        model = DriverVehicle
        fields = ['brand', 'model', 'color', 'plate_number', 'taxi_number']


class UserSerializer(serializers.ModelSerializer):
    vehicle = DriverVehicleSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'phone_number', 'avatar', 'role',
            'is_approved', 'is_available', 'kyc_status', 'kyc_rejection_reason',
            'commission_status', 'balance', 'rating_avg', 'rating_count',
            'municipio', 'vehicle',
        ]
        read_only_fields = [
            'id', 'email', 'role', 'is_approved', 'is_available', 'kyc_status',
            'kyc_rejection_reason', 'commission_status', 'balance', 'rating_avg',
            'rating_count', 'vehicle',
        ]


class DriverPublicSerializer(serializers.ModelSerializer):
    """
    What a client sees about the driver assigned to their request.
    """
    vehicle = DriverVehicleSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'full_name', 'phone_number', 'avatar', 'role', 'rating_avg', 'rating_count', 'vehicle']


class SendOtpSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(required=False, allow_blank=True, default="")
    type = serializers.ChoiceField(choices=OtpCode.Types.choices, default=OtpCode.Types.REGISTRATION)


class VerifyOtpSerializer(serializers.Serializer):
    email = serializers.EmailField()
    code = serializers.RegexField(r"^\d{6}$")
    type = serializers.ChoiceField(choices=OtpCode.Types.choices, default=OtpCode.Types.REGISTRATION)


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    fullName = serializers.CharField(max_length=255)
    phone = PhoneNumberField(required=False, allow_blank=True, region="MX")
    role = serializers.ChoiceField(
        choices=[User.Roles.CLIENTE, User.Roles.TAXI, User.Roles.MANDADITO],
        default=User.Roles.CLIENTE,
    )
    vehicleData = DriverVehicleSerializer(required=False)

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Este correo ya está registrado")
        return value

    def create(self, validated_data):
        role = validated_data['role']
        is_driver = role in (User.Roles.TAXI, User.Roles.MANDADITO)

        user = User.objects.create_user(
            username=validated_data['email'],
            email=validated_data['email'],
            password=validated_data['password'],
            full_name=validated_data['fullName'],
            phone_number=validated_data.get('phone') or None,
            role=role,
            # Clients can use the app right away, drivers wait for an admin
            is_approved=not is_driver,
            kyc_status=User.KycStatus.NOT_SUBMITTED,
        )

        vehicle_data = validated_data.get('vehicleData')
        if is_driver and vehicle_data:
            DriverVehicle.objects.create(user=user, **vehicle_data)

        return user


class LocationPingSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)
    accuracy = serializers.FloatField(required=False, allow_null=True)
    heading = serializers.FloatField(required=False, allow_null=True)
    speed = serializers.FloatField(required=False, allow_null=True)
    service_id = serializers.IntegerField(required=False, allow_null=True)


class ClientAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientAddress
        fields = ['id', 'label', 'address', 'lat', 'lng', 'references', 'created_at']
        read_only_fields = ['id', 'created_at']
