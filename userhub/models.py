"""Domain models for users held by the external data service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional


class PayloadError(ValueError):
    """Raised when a JSON payload cannot be decoded into a model."""


def _require_mapping(payload: object, kind: str) -> Mapping[str, object]:
    if not isinstance(payload, Mapping):
        raise PayloadError(f"{kind} payload must be a JSON object")
    return payload


def _optional_str(payload: Mapping[str, object], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadError(f"'{key}' must be a string")
    return value


def _str_with_default(payload: Mapping[str, object], key: str, default: str = "") -> str:
    value = _optional_str(payload, key)
    return default if value is None else value


def _int_with_default(payload: Mapping[str, object], key: str, default: int = 0) -> int:
    value = payload.get(key)
    if value is None:
        return default
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise PayloadError(f"'{key}' must be an integer")
    return value


@dataclass(frozen=True)
class User:
    """A user record as reported by the data service.

    ``id`` and both timestamps are assigned remotely and are only ever read
    from service responses.
    """

    id: int
    email: str
    name: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @staticmethod
    def from_dict(payload: object) -> "User":
        """Decode a service payload, filling in defaults for missing fields."""

        data = _require_mapping(payload, "User")
        return User(
            id=_int_with_default(data, "id"),
            email=_str_with_default(data, "email"),
            name=_optional_str(data, "name"),
            created_at=_str_with_default(data, "createdAt"),
            updated_at=_str_with_default(data, "updatedAt"),
        )


@dataclass(frozen=True)
class CreateUserDto:
    email: str
    name: Optional[str] = None

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"email": self.email}
        if self.name is not None:
            payload["name"] = self.name
        return payload

    @staticmethod
    def from_dict(payload: object) -> "CreateUserDto":
        data = _require_mapping(payload, "Request")
        return CreateUserDto(
            email=_str_with_default(data, "email"),
            name=_optional_str(data, "name"),
        )


@dataclass(frozen=True)
class UpdateUserDto:
    """Partial update: ``None`` fields are left untouched remotely."""

    email: Optional[str] = None
    name: Optional[str] = None

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {}
        if self.email is not None:
            payload["email"] = self.email
        if self.name is not None:
            payload["name"] = self.name
        return payload

    @staticmethod
    def from_dict(payload: object) -> "UpdateUserDto":
        data = _require_mapping(payload, "Request")
        return UpdateUserDto(
            email=_optional_str(data, "email"),
            name=_optional_str(data, "name"),
        )


__all__ = ["CreateUserDto", "PayloadError", "UpdateUserDto", "User"]
