import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["ENVIRONMENT"] = "development"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from geomap_backend import exc
from geomap_backend.main import app
from geomap_backend.media import MediaGateway, UploadedImage, derive_thumbnail_url, get_media_gateway
from geomap_backend.ratelimit import SlidingWindowRateLimiter
from geomap_backend.routes.upload import get_upload_limiter
from geomap_database.db import get_db
from geomap_database.init_db import init_db

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class StubGateway(MediaGateway):
    """Records every call instead of talking to the media host."""

    def __init__(self):
        self.uploads = []
        self.removed = []
        self.objects = set()
        self.fail_upload = False
        self.fail_remove = False

    def upload(self, folder, data, mime_type):
        if self.fail_upload:
            raise exc.UpstreamFailure()
        storage_id = f"{folder}/img{len(self.uploads)}"
        self.uploads.append((folder, len(data), mime_type))
        self.objects.add(storage_id)
        url = f"https://res.cloudinary.com/demo/image/upload/v1/{storage_id}.png"
        return UploadedImage(storage_id=storage_id, image_url=url, thumbnail_url=derive_thumbnail_url(url))

    def remove(self, storage_id):
        if self.fail_remove:
            raise exc.UpstreamFailure("Failed to delete image")
        self.removed.append(storage_id)
        if storage_id in self.objects:
            self.objects.discard(storage_id)
            return True
        return False

    def list_storage_ids(self, prefix):
        return sorted(s for s in self.objects if s.startswith(prefix))


@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine per test."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(engine)
    yield engine
    engine.dispose()

@pytest.fixture
def db_session(engine):
    """Provide a SQLAlchemy session for isolated test usage."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def gateway():
    return StubGateway()

@pytest.fixture
def limiter():
    return SlidingWindowRateLimiter(limit=30, window=3600)

@pytest.fixture
def client(db_session, gateway, limiter):
    """Fixture for FastAPI TestClient with test DB, gateway and limiter overrides."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_gateway] = lambda: gateway
    app.dependency_overrides[get_upload_limiter] = lambda: limiter

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {"username": "alice", "password": "password123"}

@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {"username": "bob", "password": "bobpassword456"}

def register_and_auth(client, username, password):
    """Helper for registering then logging in; returns the session token."""
    r1 = client.post("/api/auth/register", json={"username": username, "password": password})
    assert r1.status_code == 201
    r2 = client.post("/api/auth/login", json={"username": username, "password": password})
    assert r2.status_code == 200
    token = r2.cookies.get("auth_token")
    assert token
    return token

@pytest.fixture
def auth_header(client, user_data):
    """Returns {'Authorization': 'Bearer <token>'} for the default user."""
    token = register_and_auth(client, user_data["username"], user_data["password"])
    client.cookies.clear()
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def second_auth_header(client, second_user_data):
    """Returns auth header for the second user."""
    token = register_and_auth(client, second_user_data["username"], second_user_data["password"])
    client.cookies.clear()
    return {"Authorization": f"Bearer {token}"}

def upload(client, headers, country_id="FRA-12", data=PNG_BYTES, mime_type="image/png"):
    return client.post(
        "/api/upload/image",
        headers=headers,
        files={"image": ("photo.png", data, mime_type)},
        data={"countryId": country_id},
    )
