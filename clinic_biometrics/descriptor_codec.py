# clinic_biometrics/descriptor_codec.py
"""
Descriptor serialization.

A descriptor is stored as text. Real extractor output is a JSON array of
floats; when no extractor is reachable, a SHA-512 hex digest of the image
bytes stands in for it. The digest has no biometric meaning: identical
bytes give identical descriptors, anything else gives an unrelated one.
"""
from __future__ import annotations

import binascii
import hashlib
import json
import math
from typing import List, Optional, Sequence

FALLBACK_LENGTH = 128


def encode(vector: Sequence[float]) -> str:
    """Serialize a numeric vector. Round-trips exactly through decode()."""
    values = [float(v) for v in vector]
    if not values:
        raise ValueError("Empty descriptor")
    if not all(math.isfinite(v) for v in values):
        raise ValueError("Descriptor contains non-finite values")
    return json.dumps(values)


def decode(text: str) -> Optional[List[float]]:
    """Return the vector encoded in text, or None if text is not an encoded vector."""
    if not isinstance(text, str):
        return None
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, list) or not data:
        return None
    values: List[float] = []
    for item in data:
        # bool is an int subclass; a list of flags is not a descriptor
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return None
        value = float(item)
        if not math.isfinite(value):
            return None
        values.append(value)
    return values


def fallback_descriptor(raw_bytes: bytes) -> str:
    """Deterministic 128-character hex digest of the image bytes."""
    return hashlib.sha512(raw_bytes).hexdigest()


def descriptor_bytes(text: str) -> Optional[bytes]:
    """Raw bytes behind an opaque (fallback) descriptor, None if not hex."""
    try:
        raw = bytes.fromhex(text)
    except (TypeError, ValueError, binascii.Error):
        return None
    return raw or None
