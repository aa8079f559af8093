# clinic_biometrics/document_scanner_service.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from . import crud
from .config import Settings
from .document_parser import DocumentType, merge_fields, parse_document_text, score_confidence
from .errors import NotFound
from .extraction import TextExtractor
from .images import decode_image, strip_data_url
from .logging_config import get_logger
from .models import UserDocumentRecord

logger = get_logger(__name__)


def assess_image_quality(image_bytes: bytes) -> float:
    """Coarse resolution proxy from the decoded size, not a real quality metric."""
    size = len(image_bytes)
    if size >= 500_000:
        return 0.9
    if size >= 200_000:
        return 0.7
    return 0.5


class DocumentScannerService:
    def __init__(self, db: Session, text_extractor: TextExtractor, settings: Settings):
        self.db = db
        self.text_extractor = text_extractor
        self.settings = settings

    def scan_document(
        self,
        user_id: str,
        document_type: DocumentType,
        front_image: str,
        back_image: Optional[str] = None,
    ) -> UserDocumentRecord:
        """
        OCR and parse a document, then store it as the user's active record
        for that document type. Verification state is left untouched.

        Raises:
            InvalidInput: front (or supplied back) image unusable
        """
        document_type = DocumentType(document_type)
        front_bytes = decode_image(front_image, self.settings.min_image_bytes)
        back_bytes = decode_image(back_image, self.settings.min_image_bytes) if back_image else None

        front_text = self.text_extractor.extract_text(front_bytes)
        fields = parse_document_text(front_text, document_type).all_fields()
        ocr_confidence = score_confidence(fields)

        raw = {"rawText": front_text}
        if back_bytes is not None:
            back_text = self.text_extractor.extract_text(back_bytes)
            fields = merge_fields(fields, parse_document_text(back_text, document_type).all_fields())
            ocr_confidence = score_confidence(fields)
            raw["backRawText"] = back_text

        row, updated = crud.upsert_document(
            self.db,
            user_id=user_id,
            document_type=document_type.value,
            front_image=strip_data_url(front_image),
            back_image=strip_data_url(back_image) if back_image else None,
            extracted_fields={**raw, **fields},
            ocr_confidence=ocr_confidence,
            scan_metadata={
                "scannedAt": datetime.now(timezone.utc).isoformat(),
                "imageQuality": assess_image_quality(front_bytes),
            },
        )
        logger.info(
            f"Document {document_type.value} {'re-scanned' if updated else 'scanned'} for user {user_id} "
            f"(fields={len(fields)}, confidence={ocr_confidence:.2f})"
        )
        return row

    def get_documents(self, user_id: str) -> List[UserDocumentRecord]:
        return crud.get_active_documents(self.db, user_id)

    def get_document(self, user_id: str, document_type: DocumentType) -> Optional[UserDocumentRecord]:
        return crud.get_active_document(self.db, user_id, DocumentType(document_type).value)

    def verify_document(self, document_id: int, verifier_id: str) -> UserDocumentRecord:
        row = crud.get_document(self.db, document_id)
        if row is None or not row.is_active:
            raise NotFound(f"Document {document_id} not found")
        row = crud.mark_document_verified(self.db, row, verifier_id)
        logger.info(f"Document {document_id} verified by {verifier_id}")
        return row

    def delete_document(self, user_id: str, document_type: DocumentType) -> bool:
        return crud.deactivate_document(self.db, user_id, DocumentType(document_type).value)
