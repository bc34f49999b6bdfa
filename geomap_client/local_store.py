"""
Local fallback store used while nobody is logged in.

Stands in for the browser's local storage: a JSON file holding a single
namespaced key whose value is the whole country id -> note mapping. The file
is read once when the store is created and rewritten on every change.
"""
import json
import logging
import os
from pathlib import Path
from typing import Dict

from geomap_backend.schemas import Note

logger = logging.getLogger(__name__)

STORAGE_KEY = "geoguessrNotes"


# PUBLIC_INTERFACE
class LocalNoteStore:
    """Notes persisted to a local JSON file, keyed by country id."""

    def __init__(self, path):
        self.path = Path(path)
        self._notes: Dict[str, Note] = self._load()

    def _load(self) -> Dict[str, Note]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            mapping = raw.get(STORAGE_KEY) or {}
            return {country_id: Note.model_validate(note) for country_id, note in mapping.items()}
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Ignoring unreadable local notes in %s: %s", self.path, e)
            return {}

    def _save(self) -> None:
        payload = {STORAGE_KEY: {country_id: note.to_wire() for country_id, note in self._notes.items()}}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, country_id: str) -> Note:
        """The note for ``country_id``, or an empty note."""
        note = self._notes.get(country_id)
        return note.model_copy(deep=True) if note is not None else Note()

    def put(self, country_id: str, note: Note) -> None:
        self._notes[country_id] = note.model_copy(deep=True)
        self._save()

    def all(self) -> Dict[str, Note]:
        return {country_id: note.model_copy(deep=True) for country_id, note in self._notes.items()}

    def clear(self) -> None:
        self._notes = {}
        self._save()
