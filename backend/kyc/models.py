from django.conf import settings
from django.db import models


class KycSubmission(models.Model):
    """
    Identity documents of a driver, stored in Google Drive. One per driver,
    replaced on re-submission after a rejection.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="kyc_submission")
    drive_folder_id = models.CharField(max_length=128)
    drive_folder_url = models.URLField(blank=True)
    ine_front_file_id = models.CharField(max_length=128)
    ine_front_url = models.URLField(blank=True)
    ine_back_file_id = models.CharField(max_length=128)
    ine_back_url = models.URLField(blank=True)
    selfie_file_id = models.CharField(max_length=128)
    selfie_url = models.URLField(blank=True)
    submitted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-submitted_at"]

    def __str__(self):
        return f"KYC of user {self.user_id}"
