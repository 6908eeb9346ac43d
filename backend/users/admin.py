from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import ClientAddress, DriverVehicle, OtpCode, User


@admin.register(User)
class MovixUserAdmin(UserAdmin):
    list_display = ('email', 'full_name', 'role', 'is_approved', 'kyc_status', 'commission_status', 'is_available')
    list_filter = ('role', 'kyc_status', 'commission_status', 'is_approved')
    search_fields = ('email', 'full_name', 'phone_number')
    fieldsets = UserAdmin.fieldsets + (
        ('MoVix', {
            'fields': (
                'role', 'full_name', 'phone_number', 'avatar', 'is_approved', 'is_available',
                'kyc_status', 'kyc_rejection_reason', 'commission_status', 'balance',
                'rating_avg', 'rating_count', 'municipio',
            ),
        }),
    )


admin.site.register(DriverVehicle)
admin.site.register(OtpCode)
admin.site.register(ClientAddress)
