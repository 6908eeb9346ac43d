import logging
from datetime import datetime

import requests
from django.conf import settings

RESEND_API_URL = "https://api.resend.com/emails"

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Resend rejected the message or could not be reached."""
    pass


def otp_email_html(code, user_name=""):
    greeting = f"¡Hola, {user_name}!" if user_name else "¡Hola!"
    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html lang="es">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Verificación MoVix</title>
</head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f5f5f5;">
    <table role="presentation" style="width: 100%; border-collapse: collapse;">
        <tr>
            <td align="center" style="padding: 40px 0;">
                <table role="presentation" style="width: 100%; max-width: 500px; border-collapse: collapse; background: linear-gradient(135deg, #FF6B35 0%, #F7931E 50%, #FF4757 100%); border-radius: 20px; overflow: hidden;">
                    <tr>
                        <td align="center" style="padding: 40px 30px 20px;">
                            <h1 style="margin: 0; font-size: 42px; font-weight: 900; color: white;">MoVix</h1>
                            <p style="margin: 8px 0 0; font-size: 14px; color: rgba(255,255,255,0.9);">Tu aplicación de movilidad local</p>
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding: 20px 30px;">
                            <div style="background: white; border-radius: 16px; padding: 30px;">
                                <p style="margin: 0 0 10px; font-size: 18px; color: #333; font-weight: 600;">{greeting}</p>
                                <p style="margin: 0 0 25px; font-size: 15px; color: #666;">Tu código de verificación para completar tu registro en MoVix es:</p>
                                <div style="background: linear-gradient(135deg, #FF6B35, #F7931E); border-radius: 12px; padding: 20px 30px; margin: 0 0 25px;">
                                    <span style="font-size: 36px; font-weight: 900; color: white; letter-spacing: 8px; font-family: 'Courier New', monospace;">{code}</span>
                                </div>
                                <p style="margin: 0; font-size: 13px; color: #999;">Este código expira en <strong style="color: #FF6B35;">{settings.OTP_EXPIRY_MINUTES} minutos</strong>.<br>Si no solicitaste este código, ignora este mensaje.</p>
                            </div>
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding: 20px 30px 40px;">
                            <p style="margin: 0; font-size: 12px; color: rgba(255,255,255,0.7);">© {year} MoVix - Todos los derechos reservados</p>
                            <p style="margin: 8px 0 0; font-size: 11px; color: rgba(255,255,255,0.5);">Este es un correo automático, por favor no respondas.</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


class ResendService:
    def __init__(self, api_key=None, from_email=None, timeout=10):
        self.api_key = api_key or settings.RESEND_API_KEY
        self.from_email = from_email or settings.RESEND_FROM_EMAIL
        self.timeout = timeout

    @property
    def enabled(self):
        return bool(self.api_key)

    def send(self, to, subject, html):
        """
        Send one transactional email. Returns the Resend message payload.
        """
        try:
            response = requests.post(
                RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"from": self.from_email, "to": to, "subject": subject, "html": html},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise EmailDeliveryError(f"Resend request failed: {e}") from e

        if not response.ok:
            raise EmailDeliveryError(f"Resend error {response.status_code}: {response.text}")

        return response.json()
