from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List
from urllib.parse import unquote, urlsplit

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userhub.proxy import DataServiceProxy
from userhub.query import QueryRequest
from userhub.transport import TransportSpawnError


class FakeDataService:
    """In-memory stand-in for the external data service."""

    def __init__(self) -> None:
        self.users: Dict[int, Dict[str, object]] = {}
        self.requests: List[QueryRequest] = []
        self.reachable = True
        self.healthy = True
        self._next_id = 1
        self._clock = 0

    def _timestamp(self) -> str:
        self._clock += 1
        return f"2024-01-01T00:00:{self._clock:02d}.000Z"

    def add_user(self, email: str, name: str | None = None) -> Dict[str, object]:
        stamp = self._timestamp()
        record = {
            "id": self._next_id,
            "email": email,
            "name": name,
            "createdAt": stamp,
            "updatedAt": stamp,
        }
        self.users[self._next_id] = record
        self._next_id += 1
        return record

    def execute(self, request: QueryRequest) -> str:
        self.requests.append(request)
        if not self.reachable:
            raise TransportSpawnError(f"Failed to connect to data service at {request.url}")
        return json.dumps(self._handle(request))

    def _handle(self, request: QueryRequest) -> object:
        path = urlsplit(request.url).path
        body = json.loads(request.body) if request.body is not None else {}
        parts = [unquote(part) for part in path.strip("/").split("/")]

        if parts == ["health"]:
            return {"status": "ok" if self.healthy else "error", "database": "connected"}

        if parts[:2] != ["api", "users"]:
            return {"error": "Not found"}

        if len(parts) == 2:
            if request.method == "GET":
                return list(self.users.values())
            if not body.get("email"):
                return {"error": "Email is required"}
            if any(user["email"] == body["email"] for user in self.users.values()):
                return {"error": "Email already exists"}
            return self.add_user(body["email"], body.get("name"))

        if len(parts) == 4 and parts[2] == "email":
            for user in self.users.values():
                if user["email"] == parts[3]:
                    return user
            return {"error": "User not found"}

        user = self.users.get(int(parts[2]))
        if user is None:
            return {"error": "User not found"}
        if request.method == "GET":
            return user
        if request.method == "PUT":
            user.update(body)
            user["updatedAt"] = self._timestamp()
            return user
        if request.method == "DELETE":
            del self.users[user["id"]]
            return user
        return {"error": "Unsupported method"}


@pytest.fixture()
def data_service() -> FakeDataService:
    return FakeDataService()


@pytest.fixture()
def proxy(data_service: FakeDataService) -> DataServiceProxy:
    return DataServiceProxy("http://data.internal:3001", transport=data_service)
