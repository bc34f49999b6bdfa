import json

from geomap_backend.schemas import Comment, Image, Note
from geomap_client.local_store import STORAGE_KEY, LocalNoteStore


def test_missing_file_is_empty(tmp_path):
    store = LocalNoteStore(tmp_path / "notes.json")
    assert store.all() == {}
    assert store.get("FRA-12") == Note()

def test_survives_restart(tmp_path):
    path = tmp_path / "notes.json"
    note = Note(
        text="yellow plates",
        images=[Image(url="data:image/png;base64,AAAA", comments=[Comment(text="look at the pole")])],
    )
    LocalNoteStore(path).put("NLD-5", note)

    reloaded = LocalNoteStore(path)
    assert reloaded.get("NLD-5") == note

def test_single_namespaced_key(tmp_path):
    path = tmp_path / "notes.json"
    store = LocalNoteStore(path)
    store.put("FRA-12", Note(text="a"))
    store.put("DEU-3", Note(text="b"))

    raw = json.loads(path.read_text())
    assert list(raw) == [STORAGE_KEY]
    assert raw[STORAGE_KEY]["FRA-12"] == {"text": "a", "images": []}
    assert set(raw[STORAGE_KEY]) == {"FRA-12", "DEU-3"}

def test_corrupt_file_is_ignored(tmp_path, caplog):
    path = tmp_path / "notes.json"
    path.write_text("{not json")
    store = LocalNoteStore(path)
    assert store.all() == {}
    assert "Ignoring unreadable local notes" in caplog.text

    store.put("FRA-12", Note(text="fresh"))
    assert LocalNoteStore(path).get("FRA-12").text == "fresh"

def test_returned_notes_are_copies(tmp_path):
    store = LocalNoteStore(tmp_path / "notes.json")
    store.put("FRA-12", Note(text="a"))
    note = store.get("FRA-12")
    note.text = "changed"
    assert store.get("FRA-12").text == "a"

def test_clear(tmp_path):
    path = tmp_path / "notes.json"
    store = LocalNoteStore(path)
    store.put("FRA-12", Note(text="a"))
    store.clear()
    assert LocalNoteStore(path).all() == {}
