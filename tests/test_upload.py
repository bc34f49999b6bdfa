import pytest

from geomap_backend import store
from geomap_backend.schemas import MAX_COUNTRY_ID_LENGTH, MAX_UPLOAD_BYTES, Image, Note
from geomap_database.models import Note as NoteRow
from geomap_database.models import User

from tests.conftest import PNG_BYTES, upload


def images_of(client, headers, country_id="FRA-12"):
    return client.get(f"/api/notes/{country_id}", headers=headers).json()["notes"]["images"]


def test_upload_attaches_image(client, auth_header, gateway):
    r = upload(client, auth_header)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["imageUrl"].startswith("https://res.cloudinary.com/")
    assert body["thumbnailUrl"] == body["imageUrl"].replace("/upload/", "/upload/w_200,h_200,c_fill/")

    images = images_of(client, auth_header)
    assert len(images) == 1
    assert images[0]["storageId"] == body["storageId"]
    assert images[0]["url"] == body["imageUrl"]
    assert images[0]["comments"] == []
    assert gateway.uploads[0][0].endswith("/FRA-12")

def test_upload_keeps_existing_text(client, auth_header):
    client.post("/api/notes/FRA-12", json={"notes": {"text": "keep me"}}, headers=auth_header)
    upload(client, auth_header)
    notes = client.get("/api/notes/FRA-12", headers=auth_header).json()["notes"]
    assert notes["text"] == "keep me"
    assert len(notes["images"]) == 1

def test_unauthenticated_upload(client, db_session, gateway):
    r = upload(client, {})
    assert r.status_code == 401
    assert gateway.uploads == []
    assert db_session.query(NoteRow).count() == 0

def test_eleventh_image_rejected(client, auth_header, gateway):
    for _ in range(10):
        assert upload(client, auth_header).status_code == 200
    before = images_of(client, auth_header)

    r = upload(client, auth_header)
    assert r.status_code == 400
    assert r.json()["error"] == "Maximum number of images (10) reached for this country"
    assert len(gateway.uploads) == 10
    assert images_of(client, auth_header) == before

@pytest.mark.parametrize("mime_type", ["image/bmp", "application/pdf", "text/plain"])
def test_unsupported_type_rejected_without_upload(client, auth_header, gateway, mime_type):
    r = upload(client, auth_header, mime_type=mime_type)
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid file type")
    assert gateway.uploads == []

def test_oversized_file_rejected_without_upload(client, auth_header, gateway):
    r = upload(client, auth_header, data=b"\x00" * (MAX_UPLOAD_BYTES + 1))
    assert r.status_code == 400
    assert r.json()["error"] == "File too large. Maximum size is 5MB"
    assert gateway.uploads == []

def test_file_at_size_limit_accepted(client, auth_header):
    assert upload(client, auth_header, data=b"\x00" * MAX_UPLOAD_BYTES).status_code == 200

def test_missing_file_or_country(client, auth_header, gateway):
    r = client.post("/api/upload/image", headers=auth_header, data={"countryId": "FRA-12"})
    assert r.status_code == 400
    assert r.json()["error"] == "No file uploaded"

    r = client.post("/api/upload/image", headers=auth_header, files={"image": ("a.png", PNG_BYTES, "image/png")})
    assert r.status_code == 400
    assert r.json()["error"] == "Country ID is required"
    assert gateway.uploads == []

def test_upload_rate_limited(client, auth_header, gateway, limiter):
    limiter.limit = 2
    assert upload(client, auth_header).status_code == 200
    assert upload(client, auth_header).status_code == 200

    r = upload(client, auth_header)
    assert r.status_code == 429
    assert "try again later" in r.json()["error"]
    assert len(gateway.uploads) == 2

def test_rate_limit_is_per_user(client, auth_header, second_auth_header, limiter):
    limiter.limit = 1
    assert upload(client, auth_header).status_code == 200
    assert upload(client, auth_header).status_code == 429
    assert upload(client, second_auth_header).status_code == 200

def test_upstream_failure(client, auth_header, gateway):
    gateway.fail_upload = True
    r = upload(client, auth_header)
    assert r.status_code == 502
    assert r.json() == {"error": "Failed to upload image"}
    assert images_of(client, auth_header) == []

def test_failed_attach_leaves_orphan(client, auth_header, gateway, monkeypatch):
    def broken_attach(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(store, "attach_image", broken_attach)
    with pytest.raises(RuntimeError):
        upload(client, auth_header)
    assert len(gateway.objects) == 1

# -------- DELETE --------
def test_delete_image(client, auth_header, gateway):
    for _ in range(3):
        upload(client, auth_header)
    before = images_of(client, auth_header)

    r = client.delete("/api/upload/FRA-12/1", headers=auth_header)
    assert r.status_code == 200
    assert r.json() == {"success": True}

    after = images_of(client, auth_header)
    assert after == [before[0], before[2]]
    assert gateway.removed == [before[1]["storageId"]]

def test_delete_out_of_range(client, auth_header, gateway):
    upload(client, auth_header)
    before = images_of(client, auth_header)

    r = client.delete("/api/upload/FRA-12/5", headers=auth_header)
    assert r.status_code == 404
    assert r.json() == {"error": "Image not found"}
    assert images_of(client, auth_header) == before
    assert gateway.removed == []

    assert client.delete("/api/upload/NOPE-1/0", headers=auth_header).status_code == 404

def test_delete_invalid_index(client, auth_header):
    assert client.delete("/api/upload/FRA-12/-1", headers=auth_header).status_code == 400
    assert client.delete("/api/upload/FRA-12/abc", headers=auth_header).status_code == 400

def test_delete_requires_auth(client, gateway):
    assert client.delete("/api/upload/FRA-12/0").status_code == 401
    assert gateway.removed == []

def test_delete_already_absent_remote_object(client, auth_header, gateway):
    upload(client, auth_header)
    gateway.objects.clear()
    assert client.delete("/api/upload/FRA-12/0", headers=auth_header).status_code == 200
    assert images_of(client, auth_header) == []

def test_delete_continues_when_host_fails(client, auth_header, gateway):
    upload(client, auth_header)
    gateway.fail_remove = True
    r = client.delete("/api/upload/FRA-12/0", headers=auth_header)
    assert r.status_code == 200
    assert images_of(client, auth_header) == []
    # the hosted object is now an orphan
    assert len(gateway.objects) == 1

def test_delete_inline_image_skips_host(client, auth_header, gateway):
    inline = {"url": "data:image/png;base64,AAAA"}
    client.post("/api/notes/FRA-12", json={"notes": {"images": [inline]}}, headers=auth_header)
    assert client.delete("/api/upload/FRA-12/0", headers=auth_header).status_code == 200
    assert gateway.removed == []

def test_overlong_country_id_rejected_without_upload(client, auth_header, gateway, db_session):
    r = upload(client, auth_header, country_id="X" * (MAX_COUNTRY_ID_LENGTH + 1))
    assert r.status_code == 400
    assert gateway.uploads == []
    assert db_session.query(NoteRow).count() == 0

    assert upload(client, auth_header, country_id="X" * MAX_COUNTRY_ID_LENGTH).status_code == 200

def test_delete_overlong_country_id(client, auth_header, gateway):
    r = client.delete(f"/api/upload/{'X' * (MAX_COUNTRY_ID_LENGTH + 1)}/0", headers=auth_header)
    assert r.status_code == 400
    assert gateway.removed == []

# -------- OWNERSHIP --------
def test_note_cannot_reference_another_users_image(client, auth_header, second_auth_header, gateway):
    upload(client, auth_header)
    alice_image = images_of(client, auth_header)[0]

    r = client.post("/api/notes/DEU-1", json={"notes": {"images": [alice_image]}}, headers=second_auth_header)
    assert r.status_code == 400
    assert images_of(client, second_auth_header, "DEU-1") == []

def test_note_cannot_move_image_across_countries(client, auth_header):
    upload(client, auth_header)
    image = images_of(client, auth_header)[0]

    r = client.post("/api/notes/DEU-1", json={"notes": {"images": [image]}}, headers=auth_header)
    assert r.status_code == 400

def test_delete_never_removes_another_users_object(client, auth_header, second_auth_header, gateway, db_session):
    upload(client, auth_header)
    alice_image = images_of(client, auth_header)[0]

    # a row written before ownership was checked on note writes
    bob = db_session.query(User).filter(User.username == "bob").one()
    store.put_note(db_session, bob.id, "DEU-1", Note(images=[Image.model_validate(alice_image)]))

    r = client.delete("/api/upload/DEU-1/0", headers=second_auth_header)
    assert r.status_code == 200
    assert images_of(client, second_auth_header, "DEU-1") == []
    assert gateway.removed == []
    assert alice_image["storageId"] in gateway.objects
    assert images_of(client, auth_header) == [alice_image]
