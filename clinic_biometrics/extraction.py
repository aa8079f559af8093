# clinic_biometrics/extraction.py
"""
Feature and text extraction.

The real extractors live in an out-of-process worker script
(`workers/extract_worker.py` by default) run as

    <python> <worker> <operation> <image_path>

which prints one JSON object:
    {"success": true, "descriptor": [...]}    operation "extract"
    {"success": true, "text": "..."}          operation "ocr"
    {"success": false, "error": "..."}

The worker is best effort. Every failure mode (no script, timeout, crash,
junk output) raises ExtractionUnavailable, and the Resilient* wrappers
recover from it with a local fallback so callers always get a result.
"""
from __future__ import annotations

import json
import os
import secrets
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol, Sequence

from . import descriptor_codec
from .config import Settings
from .errors import ExtractionUnavailable
from .logging_config import get_logger

logger = get_logger(__name__)


@contextmanager
def scoped_temp_image(data: bytes, directory: str, suffix: str = ".jpg",
                      prefix: str = "biometric") -> Iterator[Path]:
    """
    Write image bytes to a uniquely named file and remove it on exit.

    The name combines epoch milliseconds with a random suffix so concurrent
    requests never share a file.
    """
    os.makedirs(directory, exist_ok=True)
    name = f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(6)}{suffix}"
    path = Path(directory) / name
    try:
        with open(path, "wb") as f:
            f.write(data)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove temp image {path}: {e}")


class ExtractionWorker:
    """Runs the extraction worker script under a hard timeout."""

    def __init__(self, paths: Sequence[str], python: str, timeout: float, temp_dir: str):
        self.paths = tuple(paths)
        self.python = python
        self.timeout = timeout
        self.temp_dir = temp_dir

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionWorker":
        return cls(
            paths=settings.worker_paths,
            python=settings.worker_python,
            timeout=settings.worker_timeout_seconds,
            temp_dir=settings.worker_temp_dir,
        )

    def resolve(self) -> Optional[str]:
        """First candidate path that exists, in configured order."""
        for candidate in self.paths:
            if candidate and os.path.isfile(candidate):
                return candidate
        return None

    def available(self) -> bool:
        return self.resolve() is not None

    def run(self, operation: str, image_bytes: bytes, suffix: str = ".jpg") -> Dict[str, Any]:
        """
        Invoke the worker on one image.

        Returns:
            The worker's JSON payload (already checked for success)

        Raises:
            ExtractionUnavailable: on any failure
        """
        worker = self.resolve()
        if worker is None:
            raise ExtractionUnavailable("No extraction worker found")

        try:
            with scoped_temp_image(image_bytes, self.temp_dir, suffix=suffix) as image_path:
                command = [self.python, worker, operation, str(image_path)]
                try:
                    # run() kills the child when the timeout expires
                    result = subprocess.run(
                        command,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.PIPE,
                        timeout=self.timeout,
                    )
                except subprocess.TimeoutExpired as e:
                    raise ExtractionUnavailable(
                        f"Worker '{operation}' timed out after {self.timeout}s"
                    ) from e
                except OSError as e:
                    raise ExtractionUnavailable(f"Worker '{operation}' could not start: {e}") from e
        except OSError as e:
            # temp dir missing, unwritable or full
            raise ExtractionUnavailable(f"Could not stage image for worker '{operation}': {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ExtractionUnavailable(
                f"Worker '{operation}' exited with {result.returncode}: {stderr[-500:]}"
            )

        try:
            payload = json.loads(result.stdout.decode("utf-8", errors="replace"))
        except (ValueError, RecursionError) as e:
            raise ExtractionUnavailable(f"Worker '{operation}' returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ExtractionUnavailable(f"Worker '{operation}' returned {type(payload).__name__}, expected object")
        if payload.get("error"):
            raise ExtractionUnavailable(f"Worker '{operation}' reported: {payload['error']}")
        if payload.get("success") is not True:
            raise ExtractionUnavailable(f"Worker '{operation}' did not report success")
        return payload


# ---------------- DESCRIPTORS ----------------
class DescriptorExtractor(Protocol):
    def extract(self, image_bytes: bytes) -> str:
        """Serialized descriptor for the image."""


class WorkerDescriptorExtractor:
    operation = "extract"

    def __init__(self, worker: ExtractionWorker):
        self.worker = worker

    def extract(self, image_bytes: bytes) -> str:
        payload = self.worker.run(self.operation, image_bytes)
        vector = payload.get("descriptor")
        if not isinstance(vector, list) or not vector:
            raise ExtractionUnavailable("Worker returned no descriptor")
        try:
            return descriptor_codec.encode(vector)
        except (TypeError, ValueError, OverflowError) as e:
            raise ExtractionUnavailable(f"Worker returned a malformed descriptor: {e}") from e


class FallbackDescriptorExtractor:
    def extract(self, image_bytes: bytes) -> str:
        return descriptor_codec.fallback_descriptor(image_bytes)


class ResilientDescriptorExtractor:
    """Primary extractor with a fallback; callers can't tell which one answered."""

    def __init__(self, primary: DescriptorExtractor, fallback: DescriptorExtractor):
        self.primary = primary
        self.fallback = fallback

    def extract(self, image_bytes: bytes) -> str:
        try:
            return self.primary.extract(image_bytes)
        except ExtractionUnavailable as e:
            logger.warning(f"Descriptor extraction fell back to image digest: {e}")
            return self.fallback.extract(image_bytes)


# ---------------- TEXT (OCR) ----------------
class TextExtractor(Protocol):
    def extract_text(self, image_bytes: bytes) -> str:
        """Raw OCR text for the image."""


class WorkerTextExtractor:
    operation = "ocr"

    def __init__(self, worker: ExtractionWorker):
        self.worker = worker

    def extract_text(self, image_bytes: bytes) -> str:
        payload = self.worker.run(self.operation, image_bytes)
        text = payload.get("text")
        if not isinstance(text, str):
            raise ExtractionUnavailable("Worker returned no text")
        return text


class BlankTextExtractor:
    def extract_text(self, image_bytes: bytes) -> str:
        return ""


class ResilientTextExtractor:
    def __init__(self, primary: TextExtractor, fallback: TextExtractor):
        self.primary = primary
        self.fallback = fallback

    def extract_text(self, image_bytes: bytes) -> str:
        try:
            return self.primary.extract_text(image_bytes)
        except ExtractionUnavailable as e:
            logger.warning(f"OCR fell back to blank text: {e}")
            return self.fallback.extract_text(image_bytes)


def build_descriptor_extractor(settings: Settings) -> DescriptorExtractor:
    worker = ExtractionWorker.from_settings(settings)
    return ResilientDescriptorExtractor(WorkerDescriptorExtractor(worker), FallbackDescriptorExtractor())


def build_text_extractor(settings: Settings) -> TextExtractor:
    worker = ExtractionWorker.from_settings(settings)
    return ResilientTextExtractor(WorkerTextExtractor(worker), BlankTextExtractor())
