"""
Media upload gateway.

Image bytes are forwarded to Cloudinary, which stores them, bounds their
dimensions and serves them back from a durable URL. Thumbnails are not a
second upload: their URL is derived from the canonical one by inserting a
fixed transformation.

Uploading and attaching the result to a note are separate steps; see
``geomap_backend.reconcile`` for how objects orphaned between the two are
reclaimed.
"""
import base64
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader

from geomap_backend import exc
from geomap_backend.config import Settings, settings
from geomap_backend.schemas import ALLOWED_IMAGE_TYPES, MAX_IMAGES_PER_COUNTRY, MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)

ROOT_FOLDER = "geomap"
THUMBNAIL_TRANSFORMATION = "w_200,h_200,c_fill"
UPLOAD_TRANSFORMATION = [
    {"width": 1200, "height": 1200, "crop": "limit"},
    {"quality": "auto:good"},
]


@dataclass
class UploadedImage:
    storage_id: str
    image_url: str
    thumbnail_url: str


# PUBLIC_INTERFACE
def validate_upload(data: Optional[bytes], mime_type: Optional[str], current_count: int) -> None:
    """
    Check upload preconditions before anything leaves the process.

    Raises ValidationError whose ``reason`` is ``missing_file``,
    ``image_limit``, ``file_type`` or ``file_size``.
    """
    if not data:
        raise exc.ValidationError("No file uploaded", reason="missing_file")
    if current_count >= MAX_IMAGES_PER_COUNTRY:
        raise exc.ValidationError(
            f"Maximum number of images ({MAX_IMAGES_PER_COUNTRY}) reached for this country",
            reason="image_limit",
        )
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise exc.ValidationError(
            "Invalid file type. Allowed types: JPG, PNG, GIF, WEBP", reason="file_type"
        )
    if len(data) > MAX_UPLOAD_BYTES:
        raise exc.ValidationError(
            f"File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)}MB", reason="file_size"
        )


# PUBLIC_INTERFACE
def derive_thumbnail_url(url: str) -> str:
    """Insert the thumbnail transformation after the ``/upload/`` segment."""
    return url.replace("/upload/", f"/upload/{THUMBNAIL_TRANSFORMATION}/", 1)


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def folder_for(user_id: int, country_id: str) -> str:
    return f"{ROOT_FOLDER}/{user_id}/{country_id}"


def owns_storage_id(user_id: int, country_id: str, storage_id: str) -> bool:
    """Whether ``storage_id`` was uploaded by ``user_id`` into ``country_id``'s folder."""
    return storage_id.startswith(folder_for(user_id, country_id) + "/")


class MediaGateway:
    """Interface of the external image host."""

    def upload(self, folder: str, data: bytes, mime_type: str) -> UploadedImage:
        raise NotImplementedError

    def remove(self, storage_id: str) -> bool:
        """Delete one object. Returns False if it was already gone."""
        raise NotImplementedError

    def list_storage_ids(self, prefix: str) -> List[str]:
        raise NotImplementedError


# PUBLIC_INTERFACE
class CloudinaryGateway(MediaGateway):
    """MediaGateway backed by the Cloudinary SDK."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str):
        if not (cloud_name and api_key and api_secret):
            raise ValueError(
                "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET must be set."
            )
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    @classmethod
    def from_settings(cls, config: Settings) -> "CloudinaryGateway":
        return cls(config.cloudinary_cloud_name, config.cloudinary_api_key, config.cloudinary_api_secret)

    def upload(self, folder: str, data: bytes, mime_type: str) -> UploadedImage:
        try:
            result = cloudinary.uploader.upload(
                to_data_uri(data, mime_type),
                folder=folder,
                resource_type="image",
                transformation=UPLOAD_TRANSFORMATION,
            )
        except Exception as e:
            logger.exception("Cloudinary upload into %s failed", folder)
            raise exc.UpstreamFailure() from e
        url = result["secure_url"]
        return UploadedImage(
            storage_id=result["public_id"],
            image_url=url,
            thumbnail_url=derive_thumbnail_url(url),
        )

    def remove(self, storage_id: str) -> bool:
        try:
            result = cloudinary.uploader.destroy(storage_id)
        except Exception as e:
            logger.exception("Cloudinary delete of %s failed", storage_id)
            raise exc.UpstreamFailure("Failed to delete image") from e
        outcome = result.get("result")
        if outcome == "not found":
            return False
        if outcome != "ok":
            logger.error("Cloudinary delete of %s returned %r", storage_id, result)
            raise exc.UpstreamFailure("Failed to delete image")
        return True

    def list_storage_ids(self, prefix: str) -> List[str]:
        ids: List[str] = []
        cursor = None
        try:
            while True:
                kwargs = {"type": "upload", "prefix": prefix, "max_results": 500}
                if cursor:
                    kwargs["next_cursor"] = cursor
                page = cloudinary.api.resources(**kwargs)
                ids.extend(r["public_id"] for r in page.get("resources", []))
                cursor = page.get("next_cursor")
                if not cursor:
                    return ids
        except Exception as e:
            logger.exception("Listing Cloudinary resources under %s failed", prefix)
            raise exc.UpstreamFailure("Failed to list images") from e


_gateway: Optional[MediaGateway] = None
_gateway_lock = threading.Lock()


# PUBLIC_INTERFACE
def get_media_gateway() -> MediaGateway:
    """FastAPI dependency returning the process-wide Cloudinary gateway."""
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            _gateway = CloudinaryGateway.from_settings(settings)
        return _gateway
