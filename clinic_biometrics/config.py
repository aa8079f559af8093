# clinic_biometrics/config.py
"""
Configuration for the biometric identity service.

Loads settings from environment variables (and a local .env file) with
sensible defaults. Settings are immutable after initialization.
"""
from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_WORKER_PATHS = (
    str(REPO_ROOT / "workers" / "extract_worker.py"),
    "/opt/clinic-biometrics/extract_worker.py",
)


@dataclass(frozen=True)
class Settings:
    """
    Immutable service configuration.

    Matching:
        match_threshold: maximum descriptor distance accepted as a match
        enrollment_confidence: confidence stored on a freshly enrolled face
        min_image_bytes: decoded payloads shorter than this are rejected

    Extraction worker:
        worker_paths: candidate worker scripts, checked in order
        worker_python: interpreter used to run the worker
        worker_timeout_seconds: hard wall-clock limit per invocation
        worker_temp_dir: where per-call image files are written

    Credentials:
        jwt_secret / jwt_algorithm / jwt_expire_minutes
    """

    service_name: str
    debug: bool

    match_threshold: float
    enrollment_confidence: float
    min_image_bytes: int

    worker_paths: Tuple[str, ...]
    worker_python: str
    worker_timeout_seconds: float
    worker_temp_dir: str

    jwt_secret: str
    jwt_algorithm: str
    jwt_expire_minutes: int


def _worker_paths_from_env() -> Tuple[str, ...]:
    raw = os.getenv("EXTRACTION_WORKER_PATHS", "").strip()
    if not raw:
        return DEFAULT_WORKER_PATHS
    return tuple(p for p in raw.split(os.pathsep) if p.strip())


def load_settings() -> Settings:
    """Build settings from the current environment."""
    load_dotenv()
    return Settings(
        service_name=os.getenv("SERVICE_NAME", "clinic-biometrics"),
        debug=os.getenv("DEBUG", "false").lower() == "true",

        match_threshold=float(os.getenv("MATCH_THRESHOLD", "0.6")),
        enrollment_confidence=float(os.getenv("ENROLLMENT_CONFIDENCE", "0.95")),
        min_image_bytes=int(os.getenv("MIN_IMAGE_BYTES", "64")),

        worker_paths=_worker_paths_from_env(),
        worker_python=os.getenv("EXTRACTION_WORKER_PYTHON", sys.executable),
        worker_timeout_seconds=float(os.getenv("EXTRACTION_WORKER_TIMEOUT", "30")),
        worker_temp_dir=os.getenv("EXTRACTION_TEMP_DIR", tempfile.gettempdir()),

        jwt_secret=os.getenv("JWT_SECRET", "dev-only-change-me-before-deploying-clinic"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", "60")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
