"""Proxy that forwards user CRUD operations to the external data service."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Mapping, Optional, TypeVar

from .models import CreateUserDto, PayloadError, UpdateUserDto, User
from .query import build_query, normalize_base_url, path_segment
from .transport import HTTPXTransport, TransportError

logger = logging.getLogger("userhub.proxy")

DEFAULT_SERVICE_URL = "http://localhost:3001"

T = TypeVar("T")


class ServiceError(RuntimeError):
    """Raised when the data service rejects a create request."""


class ResponseParseError(RuntimeError):
    """Raised when the data service reply is not the JSON we expect."""


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ResultStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ProxyResult(Generic[T]):
    """Outcome of a proxied call that keeps outages apart from misses."""

    status: ResultStatus
    value: Optional[T] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ResultStatus.OK

    @property
    def unavailable(self) -> bool:
        return self.status is ResultStatus.UNAVAILABLE


def _error_message(payload: object) -> Optional[str]:
    """Return the ``error`` entry of a service reply, if it carries one."""

    if not isinstance(payload, Mapping) or "error" not in payload:
        return None
    value = payload["error"]
    if isinstance(value, str) and value.strip():
        return value.strip()
    return "Data service reported an error"


class DataServiceProxy:
    """Translate typed user operations into data service requests.

    Every operation is a single blocking exchange. The connection status is
    informational only and is never consulted before issuing a request.
    """

    def __init__(self, service_url: str = DEFAULT_SERVICE_URL, *, transport=None) -> None:
        self._service_url = normalize_base_url(service_url)
        self._transport = transport if transport is not None else HTTPXTransport()
        self._status = ConnectionStatus.DISCONNECTED
        self._lock = threading.Lock()

    @property
    def service_url(self) -> str:
        return self._service_url

    @service_url.setter
    def service_url(self, value: str) -> None:
        self._service_url = normalize_base_url(value)

    @property
    def transport(self):
        return self._transport

    @property
    def status(self) -> ConnectionStatus:
        with self._lock:
            return self._status

    def _set_status(self, status: ConnectionStatus) -> None:
        with self._lock:
            self._status = status

    def _query(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Mapping[str, object]] = None,
    ) -> object:
        request = build_query(self._service_url, endpoint, method, body)
        logger.debug("Data service request: %s", request.describe())
        raw = self._transport.execute(request)
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ResponseParseError(f"Failed to parse data service response: {exc}") from exc

    def connect(self) -> bool:
        try:
            payload = self._query("/health")
        except (TransportError, ResponseParseError) as exc:
            logger.warning("Data service health check failed: %s", exc)
            self._set_status(ConnectionStatus.DISCONNECTED)
            return False

        healthy = isinstance(payload, Mapping) and payload.get("status") == "ok"
        self._set_status(ConnectionStatus.CONNECTED if healthy else ConnectionStatus.DISCONNECTED)
        if healthy:
            logger.info("Connected to data service at %s", self._service_url)
        else:
            logger.warning("Data service at %s reported an unhealthy status", self._service_url)
        return healthy

    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    def disconnect(self) -> None:
        self._set_status(ConnectionStatus.DISCONNECTED)

    def _lookup_user(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Mapping[str, object]] = None,
    ) -> ProxyResult[User]:
        try:
            payload = self._query(endpoint, method, body)
        except (TransportError, ResponseParseError) as exc:
            logger.warning("%s %s failed: %s", method, endpoint, exc)
            return ProxyResult(ResultStatus.UNAVAILABLE, detail=str(exc))

        message = _error_message(payload)
        if message is not None:
            return ProxyResult(ResultStatus.NOT_FOUND, detail=message)

        try:
            user = User.from_dict(payload)
        except PayloadError as exc:
            logger.warning("%s %s returned an unexpected payload: %s", method, endpoint, exc)
            return ProxyResult(ResultStatus.UNAVAILABLE, detail=str(exc))
        return ProxyResult(ResultStatus.OK, value=user)

    def try_find_many_users(self) -> ProxyResult[List[User]]:
        try:
            payload = self._query("/api/users")
        except (TransportError, ResponseParseError) as exc:
            logger.warning("Listing users failed: %s", exc)
            return ProxyResult(ResultStatus.UNAVAILABLE, value=[], detail=str(exc))

        if not isinstance(payload, list):
            return ProxyResult(ResultStatus.OK, value=[])

        users: List[User] = []
        for index, item in enumerate(payload):
            try:
                users.append(User.from_dict(item))
            except PayloadError as exc:
                logger.warning("Skipping user entry %d in listing: %s", index, exc)
        return ProxyResult(ResultStatus.OK, value=users)

    def try_find_user_by_id(self, user_id: int) -> ProxyResult[User]:
        return self._lookup_user(f"/api/users/{int(user_id)}")

    def try_find_user_by_email(self, email: str) -> ProxyResult[User]:
        return self._lookup_user(f"/api/users/email/{path_segment(email)}")

    def try_update_user(self, user_id: int, dto: UpdateUserDto) -> ProxyResult[User]:
        return self._lookup_user(f"/api/users/{int(user_id)}", "PUT", dto.to_payload())

    def try_delete_user(self, user_id: int) -> ProxyResult[bool]:
        endpoint = f"/api/users/{int(user_id)}"
        try:
            payload = self._query(endpoint, "DELETE")
        except (TransportError, ResponseParseError) as exc:
            logger.warning("DELETE %s failed: %s", endpoint, exc)
            return ProxyResult(ResultStatus.UNAVAILABLE, value=False, detail=str(exc))

        message = _error_message(payload)
        if message is not None:
            return ProxyResult(ResultStatus.NOT_FOUND, value=False, detail=message)
        return ProxyResult(ResultStatus.OK, value=True)

    def find_many_users(self) -> List[User]:
        return list(self.try_find_many_users().value or [])

    def find_user_by_id(self, user_id: int) -> Optional[User]:
        return self.try_find_user_by_id(user_id).value

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.try_find_user_by_email(email).value

    def update_user(self, user_id: int, dto: UpdateUserDto) -> Optional[User]:
        return self.try_update_user(user_id, dto).value

    def delete_user(self, user_id: int) -> bool:
        return bool(self.try_delete_user(user_id).value)

    def create_user(self, dto: CreateUserDto) -> User:
        """Create a user, raising :class:`ServiceError` when the service refuses."""

        payload = self._query("/api/users", "POST", dto.to_payload())
        message = _error_message(payload)
        if message is not None:
            raise ServiceError(message)
        try:
            return User.from_dict(payload)
        except PayloadError as exc:
            raise ResponseParseError(f"Unexpected data service response: {exc}") from exc


__all__ = [
    "ConnectionStatus",
    "DEFAULT_SERVICE_URL",
    "DataServiceProxy",
    "ProxyResult",
    "ResponseParseError",
    "ResultStatus",
    "ServiceError",
]
