"""
Media asset store.

Publications and profile pictures keep their images in an external
asset store; the database only stores the resulting URL and asset id.
``CloudinaryAssetStore`` talks to Cloudinary's upload API using signed
requests over ``httpx``.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from ..core.errors import InvalidInput


logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}
MAX_MEDIA_BYTES = 5 * 1024 * 1024

PUBLICATIONS_FOLDER = "publicaciones"
AVATARS_FOLDER = "estudiantes_perfil"


@dataclass
class MediaFile:
    """An uploaded file held in memory until it reaches the asset store."""

    filename: str
    content_type: str
    content: bytes


@dataclass
class StoredAsset:
    url: str
    asset_id: str


class AssetStoreError(Exception):
    """Raised when the asset store rejects a request or cannot be reached."""


class AssetStore(Protocol):
    async def upload(self, media: MediaFile, folder: str) -> StoredAsset:
        ...

    async def delete(self, asset_id: str) -> None:
        ...


def validate_media(media: MediaFile) -> None:
    """Reject files that are not JPEG/PNG images or exceed 5 MiB."""
    if media.content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidInput("Invalid file format. Only JPEG and PNG images are allowed")
    if not media.content:
        raise InvalidInput("Uploaded file is empty")
    if len(media.content) > MAX_MEDIA_BYTES:
        raise InvalidInput("Image exceeds the 5 MB limit")


class CloudinaryAssetStore:
    """Asset store backed by Cloudinary's REST upload API."""

    api_base = "https://api.cloudinary.com/v1_1"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, timeout: float = 30) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _signature(self, params: Dict[str, Any]) -> str:
        # Cloudinary signs the alphabetically sorted parameters followed by the secret.
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {**params, "api_key": self.api_key, "signature": self._signature(params)}

    async def _post(self, action: str, data: Dict[str, Any], files: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.configured:
            raise AssetStoreError("Asset store is not configured")
        url = f"{self.api_base}/{self.cloud_name}/image/{action}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, data=data, files=files)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            raise AssetStoreError(f"Cloudinary {action} failed: {exc}") from exc
        except ValueError as exc:
            raise AssetStoreError(f"Cloudinary {action} returned invalid JSON") from exc

    async def upload(self, media: MediaFile, folder: str) -> StoredAsset:
        params = {"folder": folder, "timestamp": int(time.time())}
        files = {"file": (media.filename, media.content, media.content_type)}
        body = await self._post("upload", self._signed(params), files=files)
        if not body.get("secure_url") or not body.get("public_id"):
            raise AssetStoreError("Cloudinary upload response is missing the asset reference")
        logger.info("Uploaded %s to %s as %s", media.filename, folder, body["public_id"])
        return StoredAsset(url=body["secure_url"], asset_id=body["public_id"])

    async def delete(self, asset_id: str) -> None:
        params = {"public_id": asset_id, "timestamp": int(time.time())}
        body = await self._post("destroy", self._signed(params))
        if body.get("result") not in {"ok", "not found"}:
            raise AssetStoreError(f"Cloudinary refused to delete {asset_id}: {body.get('result')}")
        logger.info("Deleted asset %s", asset_id)
