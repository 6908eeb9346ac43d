from django.contrib import admin

from .models import KycSubmission


@admin.register(KycSubmission)
class KycSubmissionAdmin(admin.ModelAdmin):
    list_display = ('user', 'submitted_at', 'drive_folder_url')
