from __future__ import annotations

import logging
import random
import secrets
import uuid

logger = logging.getLogger(__name__)

_weak_random = random.Random()


def bytes_to_uuid(data: bytes) -> str:
    if len(data) != 16:
        raise ValueError("uuid requires exactly 16 bytes")
    hexed = data.hex()
    return "-".join(
        [hexed[0:8], hexed[8:12], hexed[12:16], hexed[16:20], hexed[20:32]]
    )


def _set_version_bits(data: bytes) -> bytes:
    buf = bytearray(data)
    buf[6] = (buf[6] & 0x0F) | 0x40
    buf[8] = (buf[8] & 0x3F) | 0x80
    return bytes(buf)


def _uuid_from_os() -> str:
    return str(uuid.uuid4())


def _uuid_from_secrets() -> str:
    return bytes_to_uuid(_set_version_bits(secrets.token_bytes(16)))


def _uuid_from_prng() -> str:
    # Not cryptographically strong; only reached when no OS entropy is available.
    data = bytes(_weak_random.getrandbits(8) for _ in range(16))
    return bytes_to_uuid(_set_version_bits(data))


def create_id() -> str:
    """Return a random version-4 UUID string.

    Tries the OS-backed ``uuid4`` first, then raw bytes from ``secrets``, and
    finally a seeded PRNG. Never raises; a failing source only lowers entropy.
    """

    for source in (_uuid_from_os, _uuid_from_secrets):
        try:
            return source()
        except (NotImplementedError, OSError) as exc:
            logger.debug("id source %s unavailable: %s", source.__name__, exc)
    return _uuid_from_prng()
