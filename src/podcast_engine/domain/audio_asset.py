"""Audio asset value object and data URI helpers."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

AUDIO_FORMAT = "mp3"
AUDIO_MIME_TYPE = f"audio/{AUDIO_FORMAT}"
_DATA_URI_PREFIX = f"data:{AUDIO_MIME_TYPE};base64,"


class InvalidAudioDataUriError(ValueError):
    """Raised when a string is not a base64 audio data URI of the fixed format."""


@dataclass(frozen=True)
class AudioAsset:
    """Contiguous encoded audio bytes with optional duration metadata."""

    audio_bytes: bytes
    duration_seconds: int | None = None

    def to_data_uri(self) -> str:
        return encode_data_uri(self.audio_bytes)


def encode_data_uri(buffer: bytes) -> str:
    """Return ``data:audio/mp3;base64,<payload>`` for the given bytes."""

    return _DATA_URI_PREFIX + base64.b64encode(buffer).decode("ascii")


def decode_data_uri(data_uri: str) -> bytes:
    """Return the bytes embedded in a data URI produced by encode_data_uri."""

    if not data_uri.startswith(_DATA_URI_PREFIX):
        raise InvalidAudioDataUriError(f"Expected data URI prefix '{_DATA_URI_PREFIX}'")
    try:
        return base64.b64decode(data_uri[len(_DATA_URI_PREFIX):], validate=True)
    except binascii.Error as error:
        raise InvalidAudioDataUriError("Data URI payload is not valid base64") from error
