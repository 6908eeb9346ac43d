from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from users.models import User
from users.permissions import IsAdminRole

from . import services
from .models import KycSubmission
from .serializers import KycRejectSerializer, KycReviewItemSerializer, KycSubmissionSerializer


class KycUploadView(APIView):
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        submission = services.submit_kyc(request.user, request.FILES)
        return Response({
            "success": True,
            "message": "Documentos enviados correctamente",
            "folder_url": submission.drive_folder_url,
        })


class KycStatusView(APIView):
    def get(self, request):
        user = request.user
        submission = KycSubmission.objects.filter(user=user).first()
        return Response({
            "kyc_status": user.kyc_status,
            "submitted_at": user.kyc_submitted_at,
            "reviewed_at": user.kyc_reviewed_at,
            "rejection_reason": user.kyc_rejection_reason,
            "submission": KycSubmissionSerializer(submission).data if submission else None,
        })


class KycResetView(APIView):
    def post(self, request):
        user = services.reset_kyc(request.user)
        return Response({"success": True, "kyc_status": user.kyc_status})


class KycReviewViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Admin queue of driver KYC submissions. ?status= filters by kyc_status.
    """
    serializer_class = KycReviewItemSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    def get_queryset(self):
        queryset = User.objects.filter(role__in=[User.Roles.TAXI, User.Roles.MANDADITO]).select_related('kyc_submission')
        kyc_status = self.request.query_params.get('status')
        if kyc_status:
            queryset = queryset.filter(kyc_status=kyc_status)
        return queryset.order_by('-kyc_submitted_at')

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        driver = services.approve_kyc(self.get_object(), request.user)
        return Response(self.get_serializer(driver).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = KycRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        driver = services.reject_kyc(self.get_object(), request.user, serializer.validated_data['reason'])
        return Response(self.get_serializer(driver).data)
