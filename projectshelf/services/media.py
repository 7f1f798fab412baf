"""
Media relay to the asset host (Cloudinary) plus an in-memory stand-in for
tests and local runs.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from projectshelf.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "mp4", "mov", "webm"]

# provider name -> hosts (subdomains included)
VIDEO_PROVIDERS = {
    "youtube": ("youtube.com", "youtu.be"),
    "vimeo": ("vimeo.com",),
}


class MediaHost(Protocol):
    """What the API needs from the asset host."""

    def upload(self, source, *, resource_type: str = "auto", filename: Optional[str] = None) -> dict:
        """Return {"url", "public_id", "resource_type"}."""
        ...

    def destroy(self, public_id: str, *, resource_type: str = "image") -> bool:
        ...


def resource_type_for(content_type: Optional[str]) -> str:
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("video/"):
        return "video"
    raise ValidationError("Unsupported media type. Upload an image or a video.")


def check_format(filename: Optional[str]) -> None:
    if not filename or "." not in filename:
        return
    ext = filename.rsplit(".", 1)[1].lower()
    if ext not in ALLOWED_FORMATS:
        raise ValidationError(f"Unsupported file format '.{ext}'. Allowed: {', '.join(ALLOWED_FORMATS)}")


def video_provider(url: str) -> str:
    """Name of the video platform hosting `url`; ValidationError for anything else."""
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()
    if parsed.scheme in ("http", "https") and host:
        for provider, domains in VIDEO_PROVIDERS.items():
            if any(host == d or host.endswith("." + d) for d in domains):
                return provider
    raise ValidationError("Only YouTube and Vimeo video links are supported")


@dataclass
class CloudinaryMediaHost:
    cloud_name: str
    api_key: str
    api_secret: str
    folder: str = "projectshelf"

    def __post_init__(self):
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )

    def upload(self, source, *, resource_type: str = "auto", filename: Optional[str] = None) -> dict:
        try:
            result = cloudinary.uploader.upload(
                source,
                folder=self.folder,
                resource_type=resource_type,
                allowed_formats=ALLOWED_FORMATS,
            )
        except CloudinaryError as e:
            logger.error("Cloudinary upload failed: %s", e)
            raise UpstreamError("Upload error")
        return {
            "url": result["secure_url"],
            "public_id": result["public_id"],
            "resource_type": result.get("resource_type", resource_type),
        }

    def destroy(self, public_id: str, *, resource_type: str = "image") -> bool:
        try:
            result = cloudinary.uploader.destroy(public_id, resource_type=resource_type)
        except CloudinaryError as e:
            logger.error("Cloudinary delete failed for %s: %s", public_id, e)
            return False
        return result.get("result") == "ok"


@dataclass
class InMemoryMediaHost:
    """Test double for the asset host."""

    base_url: str = "https://media.example.test"
    folder: str = "projectshelf"
    assets: dict = field(default_factory=dict)

    def upload(self, source, *, resource_type: str = "auto", filename: Optional[str] = None) -> dict:
        if hasattr(source, "read"):
            data = source.read()
        else:
            data = source
        if resource_type == "auto":
            resource_type = "image"
        public_id = f"{self.folder}/{uuid.uuid4().hex[:12]}"
        self.assets[public_id] = {"resource_type": resource_type, "data": data, "filename": filename}
        return {
            "url": f"{self.base_url}/{resource_type}/upload/{public_id}",
            "public_id": public_id,
            "resource_type": resource_type,
        }

    def destroy(self, public_id: str, *, resource_type: str = "image") -> bool:
        asset = self.assets.get(public_id)
        if not asset or asset["resource_type"] != resource_type:
            return False
        del self.assets[public_id]
        return True
