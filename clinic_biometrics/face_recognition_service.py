# clinic_biometrics/face_recognition_service.py
"""
Face enrollment, recognition and face check-in.

Per-user lifecycle: unenrolled -> active, active -> active (re-enrollment
overwrites in place), active -> inactive (soft delete). Descriptors are
encrypted at rest and decrypted only for the gallery scan.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from . import crud
from .config import Settings
from .encryption_utils import open_descriptor, seal_descriptor
from .errors import InvalidInput
from .extraction import DescriptorExtractor
from .images import decode_image, strip_data_url
from .logging_config import get_logger
from .matcher import find_best_match
from .models import FaceRecord, User
from .tokens import issue_token, user_summary

logger = get_logger(__name__)

NO_MATCH_MESSAGE = "Face not recognized. Please register or use alternative login."


@dataclass
class MatchResult:
    user_id: str
    confidence: float
    distance: float
    record: FaceRecord
    user: Optional[User]


@dataclass
class CheckInResult:
    success: bool
    message: str
    user: Optional[Dict[str, Any]] = None
    token: Optional[str] = None
    confidence: Optional[float] = None


def record_descriptor(record: FaceRecord) -> str:
    return open_descriptor(record.descriptor_ciphertext, record.descriptor_nonce)


class FaceRecognitionService:
    def __init__(self, db: Session, extractor: DescriptorExtractor, settings: Settings):
        self.db = db
        self.extractor = extractor
        self.settings = settings

    def _descriptor_for(self, image_base64: str) -> str:
        image_bytes = decode_image(image_base64, self.settings.min_image_bytes)
        descriptor = self.extractor.extract(image_bytes)
        if not descriptor:
            raise InvalidInput("Could not derive a face descriptor from the image")
        return descriptor

    def register_face(self, user_id: str, image_base64: str) -> FaceRecord:
        descriptor = self._descriptor_for(image_base64)
        ct_b64, nonce_b64 = seal_descriptor(descriptor)

        row, updated = crud.upsert_face(
            self.db,
            user_id=user_id,
            ct_b64=ct_b64,
            nonce_b64=nonce_b64,
            source_image=strip_data_url(image_base64),
            confidence=self.settings.enrollment_confidence,
        )
        logger.info(f"Face {'re-enrolled' if updated else 'enrolled'} for user {user_id}")
        return row

    def recognize_face(self, image_base64: str, threshold: Optional[float] = None) -> Optional[MatchResult]:
        """
        Match an image against every active enrolled face.

        Returns:
            MatchResult for the closest face under threshold, or None for no match

        Raises:
            InvalidInput: image payload unusable
        """
        if threshold is None:
            threshold = self.settings.match_threshold

        query = self._descriptor_for(image_base64)
        # snapshot; faces enrolled after this point are not considered
        gallery = crud.get_all_active_faces(self.db)

        match = find_best_match(query, gallery, threshold, descriptor_of=record_descriptor)
        if match is None:
            logger.debug(f"No face match among {len(gallery)} enrolled faces")
            return None

        record = match.record
        return MatchResult(
            user_id=record.user_id,
            confidence=match.confidence,
            distance=match.distance,
            record=record,
            user=crud.get_user(self.db, record.user_id),
        )

    def check_in_with_face(self, image_base64: str) -> CheckInResult:
        match = self.recognize_face(image_base64)
        if match is None or match.user is None:
            return CheckInResult(success=False, message=NO_MATCH_MESSAGE)

        token = issue_token(match.user, self.settings)
        logger.info(f"Face check-in for user {match.user_id} (confidence {match.confidence:.3f})")
        return CheckInResult(
            success=True,
            message="Face recognized successfully",
            user=user_summary(match.user),
            token=token,
            confidence=match.confidence,
        )

    def get_face_data(self, user_id: str) -> Optional[FaceRecord]:
        return crud.get_active_face(self.db, user_id)

    def delete_face(self, user_id: str) -> bool:
        removed = crud.deactivate_face(self.db, user_id)
        if removed:
            logger.info(f"Face deactivated for user {user_id}")
        return removed
