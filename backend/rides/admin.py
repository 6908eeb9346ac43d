from django.contrib import admin

from .models import DriverRating, Offer, RequestStop, ServiceLocation, ServiceRequest, StopItem


class RequestStopInline(admin.TabularInline):
    model = RequestStop
    extra = 0


@admin.register(ServiceRequest)
class ServiceRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'service_type', 'status', 'tracking_step', 'client', 'assigned_driver', 'final_price', 'created_at')
    list_filter = ('service_type', 'status', 'municipio')
    inlines = [RequestStopInline]


admin.site.register(StopItem)
admin.site.register(Offer)
admin.site.register(ServiceLocation)
admin.site.register(DriverRating)
