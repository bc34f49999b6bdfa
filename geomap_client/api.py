"""
Thin client for the GeoMap Notes HTTP API.

Every call takes the session credential explicitly and sends it as a bearer
token; nothing is kept in the HTTP client's cookie jar between calls.
"""
import logging
from typing import Optional, Tuple

import httpx

from geomap_backend.schemas import Note
from geomap_client.errors import ApiError, InvalidCredentials, SessionExpired

logger = logging.getLogger(__name__)

COOKIE_NAME = "auth_token"


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or "Request failed"
    except ValueError:
        return response.text or "Request failed"


# PUBLIC_INTERFACE
class GeomapApi:
    """Wraps an ``httpx.Client`` whose ``base_url`` points at the server."""

    def __init__(self, http: httpx.Client):
        self._http = http

    def _request(self, method: str, path: str, credential: Optional[str] = None, **kwargs) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        response = self._http.request(method, path, headers=headers, **kwargs)
        if response.status_code == 401:
            raise SessionExpired(401, _error_message(response))
        if response.is_error:
            logger.debug("%s %s -> %s", method, path, response.status_code)
            raise ApiError(response.status_code, _error_message(response))
        return response

    def _start_session(self, path: str, username: str, password: str) -> Tuple[str, str]:
        try:
            response = self._request("POST", path, json={"username": username, "password": password})
        except SessionExpired as e:
            raise InvalidCredentials(e.status_code, e.message) from None
        token = response.cookies.get(COOKIE_NAME)
        self._http.cookies.delete(COOKIE_NAME)
        if not token:
            raise ApiError(response.status_code, "Server did not issue a session")
        return response.json()["username"], token

    def register(self, username: str, password: str) -> Tuple[str, str]:
        """Returns ``(username, credential)``."""
        return self._start_session("/api/auth/register", username, password)

    def login(self, username: str, password: str) -> Tuple[str, str]:
        """Returns ``(username, credential)``."""
        return self._start_session("/api/auth/login", username, password)

    def logout(self, credential: str) -> None:
        self._request("POST", "/api/auth/logout", credential)
        self._http.cookies.delete(COOKIE_NAME)

    def check(self, credential: str) -> str:
        return self._request("GET", "/api/auth/check", credential).json()["username"]

    def get_note(self, country_id: str, credential: str) -> Note:
        body = self._request("GET", f"/api/notes/{country_id}", credential).json()
        return Note.model_validate(body.get("notes") or {})

    def put_note(self, country_id: str, note: Note, credential: str) -> None:
        self._request("POST", f"/api/notes/{country_id}", credential, json={"notes": note.to_wire()})

    def upload_image(self, country_id: str, data: bytes, mime_type: str, credential: str, filename: str = "image") -> dict:
        files = {"image": (filename, data, mime_type)}
        return self._request(
            "POST", "/api/upload/image", credential, files=files, data={"countryId": country_id}
        ).json()

    def delete_image(self, country_id: str, index: int, credential: str) -> None:
        self._request("DELETE", f"/api/upload/{country_id}/{index}", credential)
