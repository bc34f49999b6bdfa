import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from geomap_backend import exc, store
from geomap_backend.config import settings
from geomap_backend.media import MediaGateway, folder_for, get_media_gateway, owns_storage_id, validate_upload
from geomap_backend.ratelimit import SlidingWindowRateLimiter
from geomap_backend.routes.notes import CountryId
from geomap_backend.schemas import MAX_COUNTRY_ID_LENGTH, MAX_UPLOAD_BYTES, Image, SuccessResponse, UploadResponse
from geomap_backend.security import Identity, get_current_identity
from geomap_database.db import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Images"])

upload_limiter = SlidingWindowRateLimiter(settings.upload_rate_limit, settings.upload_rate_window_seconds)


def get_upload_limiter() -> SlidingWindowRateLimiter:
    return upload_limiter


# PUBLIC_INTERFACE
@router.post("/image", response_model=UploadResponse, summary="Upload an image to a country note")
def upload_image(
    image: Optional[UploadFile] = File(None),
    country_id: Optional[str] = Form(None, alias="countryId", max_length=MAX_COUNTRY_ID_LENGTH),
    db=Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    gateway: MediaGateway = Depends(get_media_gateway),
    limiter: SlidingWindowRateLimiter = Depends(get_upload_limiter),
):
    """
    Upload an image and append it to the country's note.

    JPG, PNG, GIF or WEBP up to 5MB, at most 10 images per country. The
    upload and the attach are separate steps: if attaching fails the remote
    object is left behind for the reconciliation sweep.
    """
    limiter.hit(identity.username)
    if not country_id:
        raise exc.ValidationError("Country ID is required")
    data = image.file.read(MAX_UPLOAD_BYTES + 1) if image is not None else None
    current = store.get_note(db, identity.user_id, country_id).note
    validate_upload(data, image.content_type if image is not None else None, len(current.images))

    uploaded = gateway.upload(folder_for(identity.user_id, country_id), data, image.content_type)
    try:
        store.attach_image(
            db,
            identity.user_id,
            country_id,
            Image(storage_id=uploaded.storage_id, url=uploaded.image_url, thumbnail_url=uploaded.thumbnail_url),
        )
    except Exception:
        logger.error(
            "Uploaded %s for user %s but could not attach it to %s; left as orphan",
            uploaded.storage_id,
            identity.user_id,
            country_id,
        )
        raise
    return {
        "success": True,
        "image_url": uploaded.image_url,
        "thumbnail_url": uploaded.thumbnail_url,
        "storage_id": uploaded.storage_id,
    }

# PUBLIC_INTERFACE
@router.delete("/{country_id}/{image_index}", response_model=SuccessResponse, summary="Remove an image from a country note")
def delete_image(
    country_id: CountryId,
    image_index: int,
    db=Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    gateway: MediaGateway = Depends(get_media_gateway),
):
    """
    Remove the image at ``image_index`` (and its comments) from the note and
    release the hosted object. A failed remote delete is logged and the note
    is still updated. Only objects inside this note's own upload folder are
    ever deleted from the host.
    """
    if image_index < 0:
        raise exc.ValidationError("Invalid image index")
    current = store.get_note(db, identity.user_id, country_id).note
    if image_index >= len(current.images):
        raise exc.NotFound("Image", image_index)

    storage_id = current.images[image_index].storage_id
    if storage_id and not owns_storage_id(identity.user_id, country_id, storage_id):
        logger.warning(
            "Note %s of user %s names %s outside its folder; not deleting it from the media host",
            country_id,
            identity.user_id,
            storage_id,
        )
    elif storage_id:
        try:
            if not gateway.remove(storage_id):
                logger.info("Image %s was already absent from the media host", storage_id)
        except exc.UpstreamFailure:
            logger.warning("Could not delete %s from the media host; left as orphan", storage_id)

    store.detach_image(db, identity.user_id, country_id, image_index)
    return {"success": True}
