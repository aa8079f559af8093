# clinic_biometrics/images.py
from __future__ import annotations

import base64
import binascii
import re

from .errors import InvalidInput

_DATA_URL = re.compile(r"^\s*data:[^,]*?(?:;base64)?,", re.I)


def strip_data_url(payload: str | None) -> str:
    """Drop a `data:image/...;base64,` prefix and surrounding whitespace."""
    if not payload:
        return ""
    return _DATA_URL.sub("", payload, count=1).strip()


def decode_image(payload: str | None, min_bytes: int) -> bytes:
    """base64 (optionally data-URL wrapped) -> raw image bytes."""
    body = strip_data_url(payload)
    if not body:
        raise InvalidInput("Image payload is empty")
    # line-wrapped base64 is common from mobile clients
    body = re.sub(r"\s+", "", body)
    try:
        raw = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput(f"Image payload is not valid base64: {e}") from e
    if len(raw) < min_bytes:
        raise InvalidInput(f"Image payload too short ({len(raw)} bytes, need {min_bytes})")
    return raw
