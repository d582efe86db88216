"""
Python client for the campus events API.

DashboardClient keeps only the state a dashboard needs between actions: the
signed-in user, the last event list, and the ids of events the student is
registered for. None of it is a system of record; every mutation is followed
by a reload from the server.
"""

import logging
from typing import Any, Dict, List, Optional, Set
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"


class ApiError(Exception):
    """Non-2xx response, or the server could not be reached (status 0)."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return body["error"]
    return f"HTTP {response.status_code}"


class DashboardClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

        self.user: Optional[Dict[str, Any]] = None
        self.events: List[Dict[str, Any]] = []
        self.my_event_ids: Set[int] = set()
        self.error: Optional[str] = None

    # ---------- transport ----------
    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            self.error = str(exc)
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(0, str(exc)) from exc

        if not response.ok:
            message = _error_message(response)
            self.error = message
            logger.warning("%s %s -> %s %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message)

        self.error = None
        return response

    def _json(self, method: str, path: str, **kwargs):
        return self._request(method, path, **kwargs).json()

    # ---------- auth ----------
    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.get("role") == "admin")

    def login(self, email: str, password: str, role: str = "student") -> Dict[str, Any]:
        body = self._json("POST", "/login", json={"email": email, "password": password, "role": role})
        self.user = body["user"]
        return self.user

    def register(self, email: str, password: str, name: str, department: str, usn: str) -> None:
        self._json(
            "POST",
            "/register",
            json={
                "email": email,
                "password": password,
                "name": name,
                "department": department,
                "usn": usn,
            },
        )

    def logout(self) -> None:
        self.user = None
        self.events = []
        self.my_event_ids = set()
        self.error = None

    # ---------- events ----------
    def load_events(self) -> List[Dict[str, Any]]:
        self.events = self._json("GET", "/events")
        return self.events

    def retry(self) -> List[Dict[str, Any]]:
        """Reload the event list after a failed load."""
        return self.load_events()

    def event(self, event_id: int) -> Optional[Dict[str, Any]]:
        return next((e for e in self.events if e["id"] == event_id), None)

    def create_event(self, title: str, description: str, date: str, location: str) -> int:
        body = self._json(
            "POST",
            "/events",
            json={"title": title, "description": description, "date": date, "location": location},
        )
        self.load_events()
        return body["id"]

    def update_event(self, event_id: int, **changes) -> None:
        """Send the cached event merged with `changes` as a full replacement."""
        current = self.event(event_id) or {}
        payload = {k: v for k, v in current.items() if k not in ("id", "created_at", "registeredStudentsCount")}
        payload.update(changes)
        self._json("PUT", f"/events/{event_id}", json=payload)
        self.load_events()

    def delete_event(self, event_id: int) -> None:
        self.events = [e for e in self.events if e["id"] != event_id]
        self._json("DELETE", f"/events/{event_id}")
        self.load_events()

    def registrations(self, event_id: int) -> List[Dict[str, Any]]:
        return self._json("GET", f"/events/{event_id}/registrations")

    # ---------- student registrations ----------
    def load_my_registrations(self) -> Set[int]:
        if not self.user:
            return set()
        email = quote(self.user["email"], safe="")
        self.my_event_ids = set(self._json("GET", f"/student/{email}/registrations"))
        return self.my_event_ids

    def is_registered(self, event_id: int) -> bool:
        return event_id in self.my_event_ids

    def _email(self) -> str:
        if not self.user:
            self.error = "Not logged in"
            raise ApiError(0, "Not logged in")
        return self.user["email"]

    def _restore(self, event_id: int, was_registered: bool) -> None:
        if was_registered:
            self.my_event_ids.add(event_id)
        else:
            self.my_event_ids.discard(event_id)

    def register_for_event(self, event_id: int, name: str, department: str, usn: str) -> int:
        email = self._email()
        was_registered = self.is_registered(event_id)
        self.my_event_ids.add(event_id)
        try:
            body = self._json(
                "POST",
                f"/events/{event_id}/register",
                json={"name": name, "department": department, "usn": usn, "email": email},
            )
        except ApiError:
            self._restore(event_id, was_registered)
            raise
        self.load_my_registrations()
        self.load_events()
        return body["id"]

    def unregister_from_event(self, event_id: int) -> None:
        email = self._email()
        was_registered = self.is_registered(event_id)
        self.my_event_ids.discard(event_id)
        try:
            self._json("DELETE", f"/events/{event_id}/unregister", json={"email": email})
        except ApiError:
            self._restore(event_id, was_registered)
            raise
        self.load_my_registrations()
        self.load_events()

    # ---------- materials ----------
    def upload_recording(self, event_id: int, filename: str, content: bytes, mimetype: str) -> None:
        self._json(
            "POST",
            f"/events/{event_id}/upload-recording",
            files={"recording": (filename, content, mimetype)},
        )
        self.load_events()

    def download_recording(self, event_id: int):
        response = self._request("GET", f"/events/{event_id}/recording")
        return response.content, response.headers.get("Content-Type")
