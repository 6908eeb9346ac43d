import logging
import re
import unicodedata

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework import status

from movix_backend.errors import ServiceError
from users.models import User

from .drive_client import DriveClient, DriveUploadError, load_service_account
from .models import KycSubmission

MAX_FILE_SIZE = 5 * 1024 * 1024
ALLOWED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

# form field -> file name in Drive
KYC_FILES = (
    ("ine_front", "INE_FRENTE"),
    ("ine_back", "INE_ATRAS"),
    ("selfie", "SELFIE"),
)

logger = logging.getLogger(__name__)


class KycError(ServiceError):
    default_code = "KYC_ERROR"


def sanitize_name(name):
    """
    Folder safe version of a person's name: no accents, only letters,
    digits and underscores, at most 50 chars.
    """
    normalized = unicodedata.normalize("NFD", name or "")
    without_accents = "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")
    cleaned = re.sub(r"[^a-zA-Z0-9\s]", "", without_accents)
    return re.sub(r"\s+", "_", cleaned)[:50]


def folder_name_for(user):
    return f"KYC_{user.role.upper()}_{user.pk}_{sanitize_name(user.full_name)}"


def validate_file(upload, field):
    if upload is None:
        raise KycError(f"Falta el archivo {field}", code="MISSING_FILE", field=field)
    if upload.content_type not in ALLOWED_MIME_TYPES:
        raise KycError("El archivo debe ser JPEG, PNG o WebP", code="INVALID_FILE_TYPE", field=field)
    if upload.size > MAX_FILE_SIZE:
        raise KycError("El archivo debe pesar menos de 5MB", code="FILE_TOO_LARGE", field=field)


def check_can_submit(user):
    if not user.is_driver:
        raise KycError("Solo conductores envían KYC", code="INVALID_ROLE", status_code=status.HTTP_403_FORBIDDEN)
    if user.kyc_status not in (User.KycStatus.NOT_SUBMITTED, User.KycStatus.REJECTED):
        raise KycError("Ya enviaste tus documentos", code="KYC_ALREADY_SUBMITTED", current_status=user.kyc_status)


def drive_client_from_settings():
    if not settings.GOOGLE_SERVICE_ACCOUNT_JSON or not settings.GOOGLE_DRIVE_KYC_FOLDER:
        raise KycError(
            "Google Drive no está configurado",
            code="CONFIG_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    try:
        return DriveClient(load_service_account(settings.GOOGLE_SERVICE_ACCOUNT_JSON))
    except DriveUploadError as e:
        logger.error(f"[KYC] {e}")
        raise KycError(
            "Google Drive no está configurado", code="CONFIG_ERROR", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


def submit_kyc(user, files, drive_client=None):
    """
    Uploads the three documents to a new Drive folder and moves the user to
    pending review. files maps ine_front / ine_back / selfie to uploads.
    """
    check_can_submit(user)
    for field, _ in KYC_FILES:
        validate_file(files.get(field), field)

    drive = drive_client or drive_client_from_settings()
    folder_name = folder_name_for(user)

    try:
        logger.info(f"[KYC] Creating Drive folder: {folder_name}")
        folder = drive.create_folder(folder_name, settings.GOOGLE_DRIVE_KYC_FOLDER)
        uploaded = {}
        for field, drive_name in KYC_FILES:
            upload = files[field]
            extension = ALLOWED_MIME_TYPES[upload.content_type]
            uploaded[field] = drive.upload_file(
                f"{drive_name}.{extension}", upload.read(), upload.content_type, folder["id"]
            )
    except DriveUploadError as e:
        logger.error(f"[KYC] Drive upload failed for user {user.pk}: {e}")
        raise KycError(
            "No se pudieron subir los documentos", code="DRIVE_ERROR",
            status_code=status.HTTP_502_BAD_GATEWAY, retryable=True,
        )

    now = timezone.now()
    with transaction.atomic():
        KycSubmission.objects.filter(user=user).delete()
        submission = KycSubmission.objects.create(
            user=user,
            drive_folder_id=folder["id"],
            drive_folder_url=folder.get("webViewLink", ""),
            ine_front_file_id=uploaded["ine_front"]["file_id"],
            ine_front_url=uploaded["ine_front"]["url"],
            ine_back_file_id=uploaded["ine_back"]["file_id"],
            ine_back_url=uploaded["ine_back"]["url"],
            selfie_file_id=uploaded["selfie"]["file_id"],
            selfie_url=uploaded["selfie"]["url"],
        )
        user.kyc_status = User.KycStatus.PENDING
        user.kyc_submitted_at = now
        user.kyc_rejection_reason = None
        user.save(update_fields=["kyc_status", "kyc_submitted_at", "kyc_rejection_reason"])

    return submission


def reset_kyc(user):
    if user.kyc_status != User.KycStatus.REJECTED:
        raise KycError("Solo puedes reenviar documentos rechazados", code="INVALID_STATE")
    user.kyc_status = User.KycStatus.NOT_SUBMITTED
    user.save(update_fields=["kyc_status"])
    return user


def approve_kyc(driver, admin, now=None):
    now = now or timezone.now()
    driver.kyc_status = User.KycStatus.APPROVED
    driver.is_approved = True
    driver.kyc_reviewed_at = now
    driver.kyc_reviewed_by = admin
    driver.kyc_rejection_reason = None
    driver.save(update_fields=["kyc_status", "is_approved", "kyc_reviewed_at", "kyc_reviewed_by", "kyc_rejection_reason"])
    logger.info(f"[KYC] Driver {driver.pk} approved by {admin.pk}")
    return driver


def reject_kyc(driver, admin, reason=None, now=None):
    now = now or timezone.now()
    driver.kyc_status = User.KycStatus.REJECTED
    driver.kyc_reviewed_at = now
    driver.kyc_reviewed_by = admin
    driver.kyc_rejection_reason = reason or None
    driver.save(update_fields=["kyc_status", "kyc_reviewed_at", "kyc_reviewed_by", "kyc_rejection_reason"])
    logger.info(f"[KYC] Driver {driver.pk} rejected by {admin.pk}")
    return driver
