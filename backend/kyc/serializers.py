from rest_framework import serializers

from users.models import User

from .models import KycSubmission


class KycSubmissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = KycSubmission
        fields = [
            'id', 'drive_folder_id', 'drive_folder_url',
            'ine_front_url', 'ine_back_url', 'selfie_url', 'submitted_at',
        ]


class KycReviewItemSerializer(serializers.ModelSerializer):
    """
    A driver as seen from the admin KYC queue.
    """
    kyc_submission = KycSubmissionSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'phone_number', 'role', 'kyc_status',
            'kyc_submitted_at', 'kyc_reviewed_at', 'kyc_rejection_reason', 'kyc_submission',
        ]


class KycRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
