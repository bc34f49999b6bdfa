"""
Annotation sync controller.

Decides, per operation, where a note lives:

* no session: the local fallback store only, with images kept inline as
  ``data:`` URIs;
* a session: the server only. The local store is never written, and notes
  read from the server are cached in memory per user.

Local notes are not migrated into an account on login, and remote notes are
not copied into the local store on logout. The two pools stay separate.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from geomap_backend.schemas import (
    ALLOWED_IMAGE_TYPES,
    MAX_COMMENTS_PER_IMAGE,
    MAX_IMAGES_PER_COUNTRY,
    MAX_UPLOAD_BYTES,
    Comment,
    Image,
    Note,
)
from geomap_client.api import GeomapApi
from geomap_client.errors import ApiError, NotFound, SessionExpired, ValidationError
from geomap_client.local_store import LocalNoteStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """An authenticated user and the credential proving it."""
    username: str
    token: str


# PUBLIC_INTERFACE
def validate_image(data: Optional[bytes], mime_type: Optional[str], current_count: int) -> None:
    """Same upload preconditions the server enforces, checked before any I/O."""
    if not data:
        raise ValidationError("No file provided", reason="missing_file")
    if current_count >= MAX_IMAGES_PER_COUNTRY:
        raise ValidationError(
            f"Maximum {MAX_IMAGES_PER_COUNTRY} images allowed per country", reason="image_limit"
        )
    if mime_type not in ALLOWED_IMAGE_TYPES:
        formats = ", ".join(t.split("/")[1].upper() for t in ALLOWED_IMAGE_TYPES)
        raise ValidationError(f"Unsupported file type. Please use: {formats}", reason="file_type")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)}MB", reason="file_size"
        )


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


# PUBLIC_INTERFACE
class AnnotationSync:
    """Routes note reads and writes to local storage or the server."""

    def __init__(self, local_store: LocalNoteStore, api: GeomapApi):
        self.local = local_store
        self.api = api
        self._remote: Dict[str, Dict[str, Note]] = {}

    # -- sessions --

    def register(self, username: str, password: str) -> Session:
        name, token = self.api.register(username, password)
        return Session(name, token)

    def login(self, username: str, password: str) -> Session:
        name, token = self.api.login(username, password)
        return Session(name, token)

    def logout(self, session: Session) -> None:
        """
        End ``session`` and forget the notes fetched under it. Server errors
        are logged; the local state is cleared regardless.
        """
        try:
            self.api.logout(session.token)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning("Logout request failed: %s", e)
        finally:
            self._remote.pop(session.username, None)

    def check(self, session: Optional[Session]) -> Optional[str]:
        """Username behind ``session``, or None once the server rejects it."""
        if session is None:
            return None
        try:
            return self.api.check(session.token)
        except SessionExpired:
            self._remote.pop(session.username, None)
            return None

    def cached_notes(self, session: Session) -> Dict[str, Note]:
        return dict(self._remote.get(session.username, {}))

    # -- notes --

    def load_note(self, country_id: str, session: Optional[Session] = None) -> Note:
        if session is None:
            return self.local.get(country_id)
        note = self.api.get_note(country_id, session.token)
        self._remote.setdefault(session.username, {})[country_id] = note
        return note

    def save_note(self, country_id: str, note: Note, session: Optional[Session] = None) -> Note:
        if session is None:
            self.local.put(country_id, note)
            return note
        self.api.put_note(country_id, note, session.token)
        self._remote.setdefault(session.username, {})[country_id] = note
        return note

    def save_text(self, country_id: str, text: str, session: Optional[Session] = None) -> Note:
        current = self.load_note(country_id, session)
        return self.save_note(country_id, Note(text=text, images=current.images), session)

    # -- images --

    def add_image(
        self,
        country_id: str,
        data: bytes,
        mime_type: str,
        session: Optional[Session] = None,
        filename: str = "image",
    ) -> Note:
        """
        Validate and attach an image. Anonymous images are stored inline;
        with a session the server uploads and attaches it, and the note is
        re-read afterwards.
        """
        current = self.load_note(country_id, session)
        validate_image(data, mime_type, len(current.images))
        if session is None:
            image = Image(url=to_data_uri(data, mime_type))
            return self.save_note(country_id, Note(text=current.text, images=[*current.images, image]))
        self.api.upload_image(country_id, data, mime_type, session.token, filename=filename)
        return self.load_note(country_id, session)

    def remove_image(self, country_id: str, index: int, session: Optional[Session] = None) -> Note:
        if session is not None:
            self.api.delete_image(country_id, index, session.token)
            return self.load_note(country_id, session)
        current = self.local.get(country_id)
        if index < 0 or index >= len(current.images):
            raise NotFound(f"Image {index} not found")
        images = [image for i, image in enumerate(current.images) if i != index]
        return self.save_note(country_id, Note(text=current.text, images=images))

    def add_comment(
        self, country_id: str, image_index: int, text: str, session: Optional[Session] = None
    ) -> Note:
        """Append a comment to one image's thread and save the whole note."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment cannot be empty")
        current = self.load_note(country_id, session)
        if image_index < 0 or image_index >= len(current.images):
            raise NotFound(f"Image {image_index} not found")
        target = current.images[image_index]
        if len(target.comments) >= MAX_COMMENTS_PER_IMAGE:
            raise ValidationError(
                f"Maximum {MAX_COMMENTS_PER_IMAGE} comments allowed per image", reason="comment_limit"
            )
        images = list(current.images)
        images[image_index] = target.model_copy(update={"comments": [*target.comments, Comment(text=text)]})
        return self.save_note(country_id, Note(text=current.text, images=images), session)
