import json
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("USERDESK_SESSION_SECRET", "tests-secret-key")

from userdesk.client import UserDirectoryClient


BASE_URL = "http://directory.test/users"

ADMIN_PERMISSIONS = {"VIEW", "CREATE", "EDIT", "DELETE"}


class FakeDirectory:
    """In-memory stand-in for the user directory backend."""

    def __init__(self) -> None:
        self.users: Dict[str, dict] = {}
        self.permissions: Dict[str, Set[str]] = {
            "1": set(ADMIN_PERMISSIONS),
            "6": {"VIEW"},
        }
        self.requests: List[httpx.Request] = []
        self.fail_managed_with: Optional[Exception] = None
        self.forced: Dict[tuple, tuple] = {}
        self._next_id = 1

    def add_user(self, name: str, roles=("PERSONAL",), groups=("GROUP_1",)) -> dict:
        user = {
            "id": self._next_id,
            "name": name,
            "roles": list(roles),
            "groups": list(groups),
        }
        self.users[str(self._next_id)] = user
        self._next_id += 1
        return user

    def force(self, method: str, path: str, status_code: int, **kwargs) -> None:
        self.forced[(method, path)] = (status_code, kwargs)

    def calls(self, method: str, path: str = "/users") -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> UserDirectoryClient:
        return UserDirectoryClient(BASE_URL, transport=self.transport())

    def _allowed(self, request: httpx.Request, permission: str) -> bool:
        identity = request.headers.get("Authorization", "")
        return permission in self.permissions.get(identity, set())

    def _denied(self, permission: str) -> httpx.Response:
        return httpx.Response(403, json={"error": f"Permission {permission} required"})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        forced = self.forced.get((request.method, path))
        if forced is not None:
            status_code, kwargs = forced
            return httpx.Response(status_code, **kwargs)

        if path.startswith("/users/managed/"):
            if self.fail_managed_with is not None:
                raise self.fail_managed_with
            manager = self.users.get(path.rsplit("/", 1)[-1])
            if manager is None or "ADMIN" not in manager["roles"]:
                return httpx.Response(200, json=[])
            managed = [
                user
                for user in self.users.values()
                if user is not manager and set(user["groups"]) & set(manager["groups"])
            ]
            return httpx.Response(200, json=managed)

        if path == "/users" and request.method == "GET":
            if not self._allowed(request, "VIEW"):
                return self._denied("VIEW")
            return httpx.Response(200, json=list(self.users.values()))

        if path == "/users" and request.method == "POST":
            if not self._allowed(request, "CREATE"):
                return httpx.Response(403, json={"error": "forbidden"})
            body = json.loads(request.content)
            if not body.get("name"):
                return httpx.Response(400, json={"error": "name is required"})
            user = self.add_user(body["name"], body.get("roles", []), body.get("groups", []))
            return httpx.Response(201, json=user)

        user_id = path.rsplit("/", 1)[-1]
        if request.method == "PATCH":
            if not self._allowed(request, "EDIT"):
                return self._denied("EDIT")
            user = self.users.get(user_id)
            if user is None:
                return httpx.Response(404, json={"error": "User not found"})
            body = json.loads(request.content)
            user.update({key: body[key] for key in ("name", "roles", "groups") if key in body})
            return httpx.Response(200, json=user)

        if request.method == "DELETE":
            if not self._allowed(request, "DELETE"):
                return self._denied("DELETE")
            if self.users.pop(user_id, None) is None:
                return httpx.Response(404, json={"error": "User not found"})
            return httpx.Response(204)

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def directory() -> FakeDirectory:
    fake = FakeDirectory()
    fake.add_user("Ada Admin", roles=["ADMIN"], groups=["GROUP_1"])
    fake.add_user("Bob Personal", roles=["PERSONAL"], groups=["GROUP_1"])
    fake.add_user("Cy Other", roles=["PERSONAL"], groups=["GROUP_2"])
    return fake
