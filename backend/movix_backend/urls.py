from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include
from rest_framework.authtoken.views import obtain_auth_token
from rest_framework.routers import DefaultRouter

from users.views import (
    AvailabilityView,
    ClientAddressViewSet,
    LocationPingView,
    MeView,
    RegisterView,
    SendOtpView,
    VerifyOtpView,
)
from rides.views import (
    DriverRatingsView,
    OfferViewSet,
    PlaceSearchView,
    ReverseGeocodeView,
    ServerTimeView,
    ServiceRequestViewSet,
    StopItemViewSet,
    StopViewSet,
)
from kyc.views import KycResetView, KycReviewViewSet, KycStatusView, KycUploadView
from finance.views import AdminUserViewSet, CommissionReportView, DashboardView, MarkCommissionPaidView

router = DefaultRouter()
router.register(r'requests', ServiceRequestViewSet, basename='request')
router.register(r'offers', OfferViewSet, basename='offer')
router.register(r'stops', StopViewSet, basename='stop')
router.register(r'stop-items', StopItemViewSet, basename='stop-item')
router.register(r'addresses', ClientAddressViewSet, basename='address')
router.register(r'admin/kyc', KycReviewViewSet, basename='admin-kyc')
router.register(r'admin/users', AdminUserViewSet, basename='admin-user')

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include(router.urls)),
    path('api/v1/auth/send-otp/', SendOtpView.as_view(), name='send-otp'),
    path('api/v1/auth/verify-otp/', VerifyOtpView.as_view(), name='verify-otp'),
    path('api/v1/auth/register/', RegisterView.as_view(), name='register'),
    path('api/v1/auth/login/', obtain_auth_token, name='login'),
    path('api/v1/auth/me/', MeView.as_view(), name='user-detail'),
    path('api/v1/drivers/availability/', AvailabilityView.as_view(), name='driver-availability'),
    path('api/v1/drivers/location/', LocationPingView.as_view(), name='driver-location'),
    path('api/v1/drivers/<int:driver_id>/ratings/', DriverRatingsView.as_view(), name='driver-ratings'),
    path('api/v1/server-time/', ServerTimeView.as_view(), name='server-time'),
    path('api/v1/geo/reverse/', ReverseGeocodeView.as_view(), name='geo-reverse'),
    path('api/v1/geo/search/', PlaceSearchView.as_view(), name='geo-search'),
    path('api/v1/kyc/upload/', KycUploadView.as_view(), name='kyc-upload'),
    path('api/v1/kyc/status/', KycStatusView.as_view(), name='kyc-status'),
    path('api/v1/kyc/reset/', KycResetView.as_view(), name='kyc-reset'),
    path('api/v1/admin/commissions/', CommissionReportView.as_view(), name='commission-report'),
    path('api/v1/admin/commissions/mark-paid/', MarkCommissionPaidView.as_view(), name='commission-mark-paid'),
    path('api/v1/admin/dashboard/', DashboardView.as_view(), name='admin-dashboard'),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
