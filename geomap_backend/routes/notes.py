from typing import Annotated

from fastapi import APIRouter, Depends, Path

from geomap_backend import exc, store
from geomap_backend.media import owns_storage_id
from geomap_backend.schemas import MAX_COUNTRY_ID_LENGTH, NoteEnvelope, NoteResponse, SuccessResponse
from geomap_backend.security import Identity, get_current_identity
from geomap_database.db import get_db

router = APIRouter(prefix="/api/notes", tags=["Notes"])

CountryId = Annotated[
    str,
    Path(min_length=1, max_length=MAX_COUNTRY_ID_LENGTH, description="Stable per-feature country id, e.g. FRA-12"),
]


# PUBLIC_INTERFACE
@router.get("/{country_id}", response_model=NoteResponse, summary="Get the note for a country")
def get_note(country_id: CountryId, db=Depends(get_db), identity: Identity = Depends(get_current_identity)):
    """
    Retrieve the authenticated user's note for a country.
    Countries never written return an empty note.
    """
    stored = store.get_note(db, identity.user_id, country_id)
    return {"notes": stored.note, "last_updated": stored.last_updated}

# PUBLIC_INTERFACE
@router.post("/{country_id}", response_model=SuccessResponse, summary="Replace the note for a country")
def save_note(
    body: NoteEnvelope,
    country_id: CountryId,
    db=Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Replace the whole note for a country (last writer wins).

    Hosted images may only be those uploaded into this note's own folder.
    """
    for image in body.notes.images:
        if image.storage_id and not owns_storage_id(identity.user_id, country_id, image.storage_id):
            raise exc.ValidationError("Image does not belong to this note", reason="foreign_image")
    store.put_note(db, identity.user_id, country_id, body.notes)
    return {"success": True}
