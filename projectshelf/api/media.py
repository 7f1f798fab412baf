import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from projectshelf.context import AppContext
from projectshelf.dependencies import get_context, get_current_user
from projectshelf.errors import MediaUnavailableError, UpstreamError, ValidationError
from projectshelf.models.user import User
from projectshelf.services.media import MediaHost, check_format, resource_type_for, video_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/media", tags=["media"])


class VideoUrlRequest(BaseModel):
    url: str
    # data URI or remote image URL, relayed to the asset host
    thumbnail: Optional[str] = None
    caption: Optional[str] = None


def get_media_host(context: AppContext = Depends(get_context)) -> MediaHost:
    if context.media_host is None:
        raise MediaUnavailableError()
    return context.media_host


@router.post("/upload")
def upload_media(
    media: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    host: MediaHost = Depends(get_media_host),
):
    if media is None or not media.filename:
        raise ValidationError("No file uploaded")

    check_format(media.filename)
    resource_type = resource_type_for(media.content_type)

    result = host.upload(media.file, resource_type=resource_type, filename=media.filename)
    logger.info("User %s uploaded %s %s", user.id, resource_type, result["public_id"])
    return {
        "url": result["url"],
        "public_id": result["public_id"],
        "resource_type": resource_type,
    }


@router.post("/video-url")
def register_video_url(
    data: VideoUrlRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """
    Accept a YouTube/Vimeo link as a gallery video. Only a thumbnail needs the
    asset host; a bare link works without one.
    """
    provider = video_provider(data.url)

    thumbnail = None
    if data.thumbnail:
        host = get_media_host(context)
        uploaded = host.upload(data.thumbnail, resource_type="image")
        thumbnail = {"url": uploaded["url"], "public_id": uploaded["public_id"]}

    return {
        "type": "video",
        "url": data.url.strip(),
        "provider": provider,
        "caption": data.caption,
        "thumbnail": thumbnail,
    }


@router.delete("/{public_id:path}")
def delete_media(
    public_id: str,
    resource_type: Literal["image", "video"] = "image",
    user: User = Depends(get_current_user),
    host: MediaHost = Depends(get_media_host),
):
    if not host.destroy(public_id, resource_type=resource_type):
        raise UpstreamError("Failed to delete media")
    return {"message": "Media deleted successfully"}
