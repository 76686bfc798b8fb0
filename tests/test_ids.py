import re
import uuid

import pytest

from promptsmith import ids

UUID_V4_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def test_create_id_is_uuid_v4() -> None:
    value = ids.create_id()
    assert UUID_V4_RE.match(value)
    assert uuid.UUID(value).version == 4


def test_create_id_is_unique_across_calls() -> None:
    values = {ids.create_id() for _ in range(500)}
    assert len(values) == 500


def test_falls_back_to_secrets_when_uuid4_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken() -> uuid.UUID:
        raise NotImplementedError("no os entropy")

    monkeypatch.setattr(ids.uuid, "uuid4", _broken)
    value = ids.create_id()
    assert UUID_V4_RE.match(value)


def test_falls_back_to_prng_when_no_crypto_source(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken(*_args: object) -> object:
        raise OSError("no entropy")

    monkeypatch.setattr(ids.uuid, "uuid4", _broken)
    monkeypatch.setattr(ids.secrets, "token_bytes", _broken)
    value = ids.create_id()
    assert UUID_V4_RE.match(value)


def test_bytes_to_uuid_formats_groups() -> None:
    assert ids.bytes_to_uuid(bytes(range(16))) == "00010203-0405-0607-0809-0a0b0c0d0e0f"
    with pytest.raises(ValueError):
        ids.bytes_to_uuid(b"short")
