"""
Storage - pluggable upload backends selected from the settings table.

Drivers:
- ``local``: writes under ``config.storage_dir`` and returns the relative path
- ``cloudinary``: unsigned preset upload, returns the ``secure_url``
- ``googledrive``: multipart upload with a bearer token, returns the file id

The active driver is read from the ``storage`` settings group on every
upload, so a change saved in the admin takes effect immediately.

Usage::

    manager = StorageManager(db, config)
    location = await manager.upload(UploadedFile("cover.png", data, "image/png"), "blog/cover.png")
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
import re
from typing import Dict, Optional

import aiofiles
import httpx

from .config import CoreConfig
from .db import Database
from .faults import QueryFault, StorageFault
from .security import Security

logger = logging.getLogger("paspages.storage")

DEFAULT_DRIVER = "local"

# Settings stored encrypted at rest
SECRET_KEYS = frozenset({"gdrive_access_token"})
ENCRYPTED_PREFIX = "enc:"

_CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud}/auto/upload"
_GDRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files?uploadType=multipart"
_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def seal_setting(security: Security, key: str, value: str) -> str:
    """Encrypt ``value`` when ``key`` holds a secret."""
    if key in SECRET_KEYS and value and not value.startswith(ENCRYPTED_PREFIX):
        return ENCRYPTED_PREFIX + security.encrypt(value)
    return value


def reveal_setting(security: Security, value: str) -> str:
    """Inverse of ``seal_setting``; undecryptable values read as empty."""
    if value.startswith(ENCRYPTED_PREFIX):
        return security.decrypt(value[len(ENCRYPTED_PREFIX):]) or ""
    return value


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file held in memory."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


# ============================================================================
# Drivers
# ============================================================================

class StorageDriver:
    """Contract shared by every storage backend."""

    name = "base"

    async def upload(self, file: UploadedFile, path: str) -> str:
        raise NotImplementedError


class LocalStorageDriver(StorageDriver):
    """Stores files on the local filesystem."""

    name = "local"

    def __init__(self, root: str):
        self.root = Path(root)

    async def upload(self, file: UploadedFile, path: str) -> str:
        root = self.root.resolve()
        target = (root / path.lstrip("/")).resolve()
        if root != target and root not in target.parents:
            raise StorageFault(self.name, f"path escapes storage root: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(file.content)
        logger.info(f"Stored {len(file.content)} bytes at {target}")
        return target.relative_to(root).as_posix()


class CloudinaryDriver(StorageDriver):
    """Uploads through a Cloudinary unsigned upload preset."""

    name = "cloudinary"

    def __init__(self, cloud_name: str, upload_preset: str, client: httpx.AsyncClient):
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.client = client

    async def upload(self, file: UploadedFile, path: str) -> str:
        if not self.cloud_name or not self.upload_preset:
            raise StorageFault(self.name, "Cloudinary credentials missing in Settings.")

        response = await self.client.post(
            _CLOUDINARY_UPLOAD_URL.format(cloud=self.cloud_name),
            data={
                "upload_preset": self.upload_preset,
                # Cloudinary picks the format, so the extension is dropped
                "public_id": _EXTENSION_RE.sub("", path),
            },
            files={"file": (file.filename, file.content, file.content_type)},
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            message = (data.get("error") or {}).get("message", response.text)
            raise StorageFault(self.name, f"Cloudinary Error: {message}")
        return data["secure_url"]


class GoogleDriveDriver(StorageDriver):
    """Uploads to Google Drive with an OAuth access token."""

    name = "googledrive"

    def __init__(self, access_token: str, folder_id: str, client: httpx.AsyncClient):
        self.access_token = access_token
        self.folder_id = folder_id
        self.client = client

    async def upload(self, file: UploadedFile, path: str) -> str:
        if not self.access_token:
            raise StorageFault(self.name, "Google Drive Access Token missing in Settings.")

        metadata = {
            "name": path,
            "parents": [self.folder_id] if self.folder_id else [],
        }
        response = await self.client.post(
            _GDRIVE_UPLOAD_URL,
            headers={"Authorization": f"Bearer {self.access_token}"},
            files={
                "metadata": (None, json.dumps(metadata), "application/json"),
                "file": (file.filename, file.content, file.content_type),
            },
        )
        if response.status_code >= 400:
            raise StorageFault(
                self.name,
                "Google Drive Upload Failed",
                metadata={"status": response.status_code},
            )
        return response.json()["id"]


# ============================================================================
# Manager
# ============================================================================

class StorageManager:
    """Selects the configured driver and performs uploads."""

    def __init__(
        self,
        db: Database,
        config: Optional[CoreConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.db = db
        self.config = config or CoreConfig()
        self._client = client
        self.timeout = timeout
        self.security = Security.from_config(self.config)

    async def load_settings(self) -> Dict[str, str]:
        """Key/value pairs of the ``storage`` settings group."""
        try:
            rows = await self.db.find_all(
                "SELECT key, value FROM core_settings WHERE group_name = 'storage'"
            )
        except QueryFault as fault:
            logger.warning(f"Storage settings unavailable, using defaults: {fault}")
            return {}
        return {
            row["key"]: reveal_setting(self.security, row["value"] or "")
            for row in rows
        }

    def build_driver(self, settings: Dict[str, str], client: httpx.AsyncClient) -> StorageDriver:
        driver = settings.get("storage_driver") or DEFAULT_DRIVER
        if driver == "local":
            return LocalStorageDriver(self.config.storage_dir)
        if driver == "cloudinary":
            return CloudinaryDriver(
                settings.get("cloudinary_cloud_name", ""),
                settings.get("cloudinary_upload_preset", ""),
                client,
            )
        if driver == "googledrive":
            return GoogleDriveDriver(
                settings.get("gdrive_access_token", ""),
                settings.get("gdrive_folder_id", ""),
                client,
            )
        raise StorageFault(driver, "unknown storage driver")

    async def upload(self, file: UploadedFile, path: str) -> str:
        """
        Upload ``file`` to ``path`` with the active driver.

        Raises:
            StorageFault: When the driver is misconfigured or the backend fails
        """
        settings = await self.load_settings()
        if self._client is not None:
            driver = self.build_driver(settings, self._client)
            return await self._upload(driver, file, path)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            driver = self.build_driver(settings, client)
            return await self._upload(driver, file, path)

    async def _upload(self, driver: StorageDriver, file: UploadedFile, path: str) -> str:
        try:
            location = await driver.upload(file, path)
        except StorageFault:
            raise
        except httpx.HTTPError as exc:
            raise StorageFault(driver.name, f"transport error: {exc}") from exc
        logger.info(f"Uploaded {file.filename} via {driver.name}")
        return location
