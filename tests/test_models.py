from __future__ import annotations

import pytest

from userhub.models import CreateUserDto, PayloadError, UpdateUserDto, User


@pytest.mark.parametrize("name", ["Alice", None])
def test_user_round_trip(name) -> None:
    user = User(id=7, email="alice@example.com", name=name, created_at="t1", updated_at="t2")
    assert User.from_dict(user.to_dict()) == user


def test_user_without_name_encodes_null() -> None:
    payload = User(id=1, email="a@b.com").to_dict()
    assert "name" in payload
    assert payload["name"] is None
    assert payload == {"id": 1, "email": "a@b.com", "name": None, "createdAt": "", "updatedAt": ""}


def test_user_decode_fills_defaults() -> None:
    user = User.from_dict({})
    assert user == User(id=0, email="", name=None, created_at="", updated_at="")


def test_user_decode_accepts_null_or_missing_name() -> None:
    assert User.from_dict({"id": 1, "email": "a@b.com", "name": None}).name is None
    assert User.from_dict({"id": 1, "email": "a@b.com"}).name is None


def test_user_decode_ignores_extra_fields() -> None:
    user = User.from_dict({"id": 3, "email": "c@d.com", "profile": {"bio": "hi"}})
    assert user.id == 3


@pytest.mark.parametrize("payload", [[], "user", 42, None])
def test_user_decode_rejects_non_objects(payload) -> None:
    with pytest.raises(PayloadError):
        User.from_dict(payload)


def test_user_decode_rejects_wrong_types() -> None:
    with pytest.raises(PayloadError):
        User.from_dict({"id": "1", "email": "a@b.com"})
    with pytest.raises(PayloadError):
        User.from_dict({"id": 1, "email": "a@b.com", "name": 5})


def test_create_dto_payload_omits_missing_name() -> None:
    assert CreateUserDto(email="a@b.com").to_payload() == {"email": "a@b.com"}
    assert CreateUserDto(email="a@b.com", name="A").to_payload() == {"email": "a@b.com", "name": "A"}


def test_create_dto_decode_is_tolerant() -> None:
    assert CreateUserDto.from_dict({}) == CreateUserDto(email="", name=None)
    assert CreateUserDto.from_dict({"email": "a@b.com", "name": None}).name is None


def test_update_dto_null_and_absent_are_equivalent() -> None:
    omitted = UpdateUserDto.from_dict({"email": "a@b.com"})
    nulled = UpdateUserDto.from_dict({"email": "a@b.com", "name": None})
    assert omitted == nulled
    assert omitted.to_payload() == nulled.to_payload() == {"email": "a@b.com"}


def test_update_dto_keeps_empty_strings() -> None:
    dto = UpdateUserDto.from_dict({"name": ""})
    assert dto.to_payload() == {"name": ""}


def test_update_dto_empty_payload() -> None:
    dto = UpdateUserDto.from_dict({})
    assert dto.to_payload() == {}
