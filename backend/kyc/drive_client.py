"""
Google Drive access with a service account.

The service account key signs a short lived JWT (RS256) which is exchanged
for an OAuth access token, then folders and files are created with plain
REST calls.
"""

import json
import logging
import time
import uuid

import requests
from jose import jwt
from jose.exceptions import JOSEError

TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive.file"
FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
JWT_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"

logger = logging.getLogger(__name__)


class DriveUploadError(Exception):
    pass


def load_service_account(raw):
    """
    raw is the service account JSON, either inline or a path to the key file.
    """
    if not raw:
        raise DriveUploadError("Google service account is not configured")
    raw = raw.strip()
    try:
        if raw.startswith("{"):
            return json.loads(raw)
        with open(raw, encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        raise DriveUploadError(f"Invalid service account: {e}") from e


def build_assertion(service_account, now=None):
    now = int(now if now is not None else time.time())
    claims = {
        "iss": service_account["client_email"],
        "scope": DRIVE_SCOPE,
        "aud": TOKEN_URL,
        "iat": now,
        "exp": now + 3600,
    }
    try:
        return jwt.encode(claims, service_account["private_key"], algorithm="RS256")
    except (JOSEError, KeyError) as e:
        raise DriveUploadError(f"Could not sign service account JWT: {e}") from e


class DriveClient:
    def __init__(self, service_account, timeout=30):
        self.service_account = service_account
        self.timeout = timeout
        self._access_token = None

    def access_token(self):
        if self._access_token:
            return self._access_token

        try:
            response = requests.post(
                TOKEN_URL,
                data={"grant_type": JWT_GRANT_TYPE, "assertion": build_assertion(self.service_account)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DriveUploadError(f"Token request failed: {e}") from e

        if not response.ok:
            raise DriveUploadError(f"Failed to get access token: {response.text}")

        self._access_token = response.json()["access_token"]
        return self._access_token

    def _headers(self):
        return {"Authorization": f"Bearer {self.access_token()}"}

    def create_folder(self, name, parent_id):
        """Returns the Drive file dict (id, webViewLink)."""
        try:
            response = requests.post(
                FILES_URL,
                params={"fields": "id,webViewLink"},
                headers=self._headers(),
                json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DriveUploadError(f"Folder request failed: {e}") from e

        if not response.ok:
            raise DriveUploadError(f"Failed to create folder: {response.text}")
        return response.json()

    def upload_file(self, name, content, mime_type, folder_id):
        """
        Multipart upload (metadata + media in one request).
        """
        boundary = f"boundary_{uuid.uuid4().hex}"
        metadata = json.dumps({"name": name, "parents": [folder_id]})
        body = (
            f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n{metadata}\r\n"
            f"--{boundary}\r\nContent-Type: {mime_type}\r\n\r\n"
        ).encode("utf-8") + content + f"\r\n--{boundary}--".encode("utf-8")

        headers = self._headers()
        headers["Content-Type"] = f"multipart/related; boundary={boundary}"
        try:
            response = requests.post(
                UPLOAD_URL,
                params={"uploadType": "multipart", "fields": "id,webViewLink"},
                headers=headers,
                data=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DriveUploadError(f"Upload of {name} failed: {e}") from e

        if not response.ok:
            raise DriveUploadError(f"Failed to upload file {name}: {response.text}")

        result = response.json()
        logger.info(f"Uploaded {name} to Drive folder {folder_id}")
        return {"file_id": result["id"], "url": result.get("webViewLink", "")}
