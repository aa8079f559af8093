# clinic_biometrics/tokens.py
"""Session credentials (JWT) for users who sign in by face or PIN."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from .config import Settings
from .models import User


def user_summary(user: User) -> Dict[str, Any]:
    return {
        "id": user.user_id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": user.role,
    }


def issue_token(user: User, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.user_id,
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Raises jwt.PyJWTError on a bad signature, expiry or malformed token."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
