"""
Pydantic models shared by the server routes, the annotation store and the
client-side sync controller.

Field names go over the wire in camelCase (``storageId``, ``thumbnailUrl``,
``addedAt``...). Either spelling is accepted on input.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_IMAGES_PER_COUNTRY = 10
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_COMMENTS_PER_IMAGE = 50
MAX_COMMENT_LENGTH = 1000
MAX_NOTE_TEXT = 10000
MAX_COUNTRY_ID_LENGTH = 64

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# PUBLIC_INTERFACE
class Comment(CamelModel):
    """A comment left on one image."""
    text: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)
    created_at: datetime = Field(default_factory=utcnow)


# PUBLIC_INTERFACE
class Image(CamelModel):
    """
    An image attached to a note.

    ``storage_id`` is the media host's public id. Inline images kept by the
    local fallback store have no storage id and carry a ``data:`` URI as
    ``url``.
    """
    storage_id: Optional[str] = None
    url: str
    thumbnail_url: Optional[str] = None
    added_at: datetime = Field(default_factory=utcnow)
    comments: List[Comment] = Field(default_factory=list, max_length=MAX_COMMENTS_PER_IMAGE)


# PUBLIC_INTERFACE
class Note(CamelModel):
    """Text plus ordered images for one country. Image order is display order."""
    text: str = Field(default="", max_length=MAX_NOTE_TEXT)
    images: List[Image] = Field(default_factory=list, max_length=MAX_IMAGES_PER_COUNTRY)


# PUBLIC_INTERFACE
class StoredNote(CamelModel):
    """A note as the annotation store returns it, with its write timestamp."""
    note: Note = Field(default_factory=Note)
    last_updated: Optional[datetime] = None


class Credentials(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    username: str


class NoteEnvelope(BaseModel):
    notes: Note = Field(default_factory=Note)


class NoteResponse(CamelModel):
    notes: Note
    last_updated: Optional[datetime] = None


class SuccessResponse(BaseModel):
    success: bool = True


class UploadResponse(CamelModel):
    success: bool = True
    image_url: str
    thumbnail_url: Optional[str] = None
    storage_id: str
