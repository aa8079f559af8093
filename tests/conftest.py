import base64
import dataclasses
import os
import random

# must be set before the package creates its engine
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"

import pytest
from fastapi.testclient import TestClient

from clinic_biometrics.config import get_settings, load_settings
from clinic_biometrics.db import Base, SessionLocal, engine
from clinic_biometrics.encryption_utils import hash_pin
from clinic_biometrics.extraction import FallbackDescriptorExtractor
from clinic_biometrics.face_recognition_service import FaceRecognitionService
from clinic_biometrics.models import User
from clinic_biometrics import descriptor_codec


def image_bytes(seed: int, size: int = 2048) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.getrandbits(8) for _ in range(size))


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


class FakeVectorExtractor:
    """Maps known image bytes to fixed vectors, like a deterministic embedding model."""

    def __init__(self, vectors):
        self.vectors = vectors

    def extract(self, data: bytes) -> str:
        return descriptor_codec.encode(self.vectors[data])


class StaticTextExtractor:
    def __init__(self, texts):
        self.texts = texts

    def extract_text(self, data: bytes) -> str:
        return self.texts.get(data, "")


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings(tmp_path):
    return dataclasses.replace(
        load_settings(),
        worker_paths=(str(tmp_path / "no-such-worker.py"),),
        worker_temp_dir=str(tmp_path / "work"),
        worker_timeout_seconds=5.0,
        min_image_bytes=16,
        jwt_secret="test-secret-for-clinic-biometrics-suite",
    )


@pytest.fixture
def face_service(db, settings):
    return FaceRecognitionService(db, FallbackDescriptorExtractor(), settings)


@pytest.fixture
def make_user(db):
    def _make(user_id="U1", pin="1234", **kwargs):
        user = User(
            user_id=user_id,
            email=kwargs.get("email", f"{user_id.lower()}@example.com"),
            first_name=kwargs.get("first_name", "Ada"),
            last_name=kwargs.get("last_name", "Lovelace"),
            role=kwargs.get("role", "patient"),
            pin_hash=hash_pin(pin),
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def client(settings):
    from clinic_biometrics.main import APP

    APP.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(APP)
    finally:
        APP.dependency_overrides.clear()
