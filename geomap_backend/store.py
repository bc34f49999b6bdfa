"""
Annotation store: one note per (user, country id).

Writes replace the whole note in a single commit. Two tabs writing the same
note are not merged; whichever commit lands last wins.
"""
import logging
from typing import Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geomap_backend import exc
from geomap_backend.schemas import MAX_IMAGES_PER_COUNTRY, Image, Note, StoredNote, utcnow
from geomap_database.models import Note as NoteRow
from geomap_database.models import User

logger = logging.getLogger(__name__)


def _require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise exc.NotFound("User", user_id)
    return user


def _find_row(db: Session, user_id: int, country_id: str) -> Optional[NoteRow]:
    return (
        db.query(NoteRow)
        .filter(NoteRow.user_id == user_id, NoteRow.country_id == country_id)
        .first()
    )


def _to_stored(row: NoteRow) -> StoredNote:
    return StoredNote(
        note=Note(text=row.text or "", images=[Image.model_validate(i) for i in row.images or []]),
        last_updated=row.updated_at,
    )


# PUBLIC_INTERFACE
def get_note(db: Session, user_id: int, country_id: str) -> StoredNote:
    """
    Return the user's note for ``country_id``.

    A country never written returns the default empty note, not an error.
    Raises NotFound if the user no longer exists.
    """
    _require_user(db, user_id)
    row = _find_row(db, user_id, country_id)
    if row is None:
        return StoredNote()
    return _to_stored(row)


# PUBLIC_INTERFACE
def put_note(db: Session, user_id: int, country_id: str, note: Note) -> StoredNote:
    """
    Replace the user's note for ``country_id`` with ``note``.

    Raises NotFound if the user no longer exists.
    """
    _require_user(db, user_id)
    images = [image.model_dump(mode="json", by_alias=True) for image in note.images]
    now = utcnow()
    row = _find_row(db, user_id, country_id)
    if row is None:
        row = NoteRow(user_id=user_id, country_id=country_id, text=note.text, images=images, updated_at=now)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # another writer created the row first; overwrite it
            db.rollback()
            logger.info("Concurrent first write for user %s country %s", user_id, country_id)
            row = _find_row(db, user_id, country_id)
            row.text, row.images, row.updated_at = note.text, images, now
            db.commit()
    else:
        row.text, row.images, row.updated_at = note.text, images, now
        db.commit()
    db.refresh(row)
    return _to_stored(row)


# PUBLIC_INTERFACE
def attach_image(db: Session, user_id: int, country_id: str, image: Image) -> StoredNote:
    """Append ``image`` to the end of the note's image list."""
    current = get_note(db, user_id, country_id).note
    if len(current.images) >= MAX_IMAGES_PER_COUNTRY:
        raise exc.ValidationError(
            f"Maximum number of images ({MAX_IMAGES_PER_COUNTRY}) reached for this country",
            reason="image_limit",
        )
    updated = Note(text=current.text, images=[*current.images, image])
    return put_note(db, user_id, country_id, updated)


# PUBLIC_INTERFACE
def detach_image(db: Session, user_id: int, country_id: str, index: int) -> Image:
    """
    Remove and return the image at ``index`` together with its comments.

    Raises NotFound for an index outside the list; the note is left as is.
    """
    current = get_note(db, user_id, country_id).note
    if index < 0 or index >= len(current.images):
        raise exc.NotFound("Image", index)
    images = list(current.images)
    removed = images.pop(index)
    put_note(db, user_id, country_id, Note(text=current.text, images=images))
    return removed


def referenced_storage_ids(db: Session) -> Set[str]:
    """Storage ids of every image referenced by any note."""
    ids = set()
    for (images,) in db.query(NoteRow.images).all():
        for image in images or []:
            storage_id = image.get("storageId")
            if storage_id:
                ids.add(storage_id)
    return ids
