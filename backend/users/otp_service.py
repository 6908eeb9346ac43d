"""
Email OTP used to prove ownership of the address before registration.
"""

import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .email_service import EmailDeliveryError, ResendService, otp_email_html
from .models import OtpCode

logger = logging.getLogger(__name__)


class OtpError(Exception):
    def __init__(self, message, expired=False):
        super().__init__(message)
        self.message = message
        self.expired = expired


def generate_otp():
    return str(100000 + secrets.randbelow(900000))


class OtpService:
    def __init__(self, email_service=None):
        self.email_service = email_service or ResendService()

    def send_code(self, email, name="", otp_type=OtpCode.Types.REGISTRATION):
        """
        Replaces any previous code for the same email/type and mails a new one.
        Delivery failures are logged, the code stays valid so the user can
        retry from the same screen.
        """
        email = email.lower()
        code = generate_otp()

        OtpCode.objects.filter(email=email, type=otp_type).delete()
        otp = OtpCode.objects.create(
            email=email,
            code=code,
            type=otp_type,
            expires_at=timezone.now() + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
        )

        if self.email_service.enabled:
            logger.info(f"[OTP] Sending email to: {email}")
            try:
                self.email_service.send(
                    to=email,
                    subject=f"{code} es tu código de verificación - MoVix",
                    html=otp_email_html(code, name or ""),
                )
            except EmailDeliveryError as e:
                logger.error(f"[OTP] Email delivery failed: {e}")
        else:
            logger.info(f"[DEV] No RESEND_API_KEY - OTP for {email}: {code}")

        return otp

    def verify_code(self, email, code, otp_type=OtpCode.Types.REGISTRATION):
        email = email.lower()
        otp = OtpCode.objects.filter(email=email, code=str(code), type=otp_type, verified=False).first()
        if otp is None:
            raise OtpError("Código inválido o expirado")

        now = timezone.now()
        if now > otp.expires_at:
            otp.delete()
            raise OtpError("El código ha expirado. Solicita uno nuevo.", expired=True)

        otp.verified = True
        otp.used_at = now
        otp.save(update_fields=["verified", "used_at"])
        return otp

    @staticmethod
    def has_verified_code(email, otp_type=OtpCode.Types.REGISTRATION):
        return OtpCode.objects.filter(email=email.lower(), type=otp_type, verified=True).exists()

    @staticmethod
    def clear_codes(email, otp_type=OtpCode.Types.REGISTRATION):
        OtpCode.objects.filter(email=email.lower(), type=otp_type).delete()
