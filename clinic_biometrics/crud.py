# clinic_biometrics/crud.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import FaceRecord, User, UserDocumentRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------- USERS ----------------
def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.execute(select(User).where(User.user_id == user_id)).scalar_one_or_none()


# ---------------- FACES ----------------
def get_active_face(db: Session, user_id: str) -> Optional[FaceRecord]:
    return db.execute(
        select(FaceRecord).where(FaceRecord.user_id == user_id, FaceRecord.is_active.is_(True))
    ).scalars().first()


def get_all_active_faces(db: Session) -> List[FaceRecord]:
    # primary-key order keeps tie-breaking stable across backends
    return list(db.execute(
        select(FaceRecord).where(FaceRecord.is_active.is_(True)).order_by(FaceRecord.id)
    ).scalars())


def upsert_face(
    db: Session,
    *,
    user_id: str,
    ct_b64: str,
    nonce_b64: str,
    source_image: str | None,
    confidence: float,
):
    row = get_active_face(db, user_id)
    updated = False
    if row:
        # update in place
        row.descriptor_ciphertext = ct_b64
        row.descriptor_nonce = nonce_b64
        row.source_image = source_image
        row.confidence = confidence
        row.is_active = True
        row.updated_at = _now()
        updated = True
    else:
        row = FaceRecord(
            user_id=user_id,
            descriptor_ciphertext=ct_b64,
            descriptor_nonce=nonce_b64,
            source_image=source_image,
            confidence=confidence,
            is_active=True,
        )
        db.add(row)

    db.commit()
    db.refresh(row)
    return row, updated


def deactivate_face(db: Session, user_id: str) -> bool:
    row = get_active_face(db, user_id)
    if not row:
        return False
    row.is_active = False
    row.updated_at = _now()
    db.commit()
    return True


# ---------------- DOCUMENTS ----------------
def get_active_document(db: Session, user_id: str, document_type: str) -> Optional[UserDocumentRecord]:
    return db.execute(
        select(UserDocumentRecord).where(
            UserDocumentRecord.user_id == user_id,
            UserDocumentRecord.document_type == document_type,
            UserDocumentRecord.is_active.is_(True),
        )
    ).scalars().first()


def get_active_documents(db: Session, user_id: str) -> List[UserDocumentRecord]:
    return list(db.execute(
        select(UserDocumentRecord)
        .where(UserDocumentRecord.user_id == user_id, UserDocumentRecord.is_active.is_(True))
        .order_by(UserDocumentRecord.created_at.desc(), UserDocumentRecord.id.desc())
    ).scalars())


def get_document(db: Session, document_id: int) -> Optional[UserDocumentRecord]:
    return db.get(UserDocumentRecord, document_id)


def upsert_document(
    db: Session,
    *,
    user_id: str,
    document_type: str,
    front_image: str,
    back_image: str | None,
    extracted_fields: Dict[str, Any],
    ocr_confidence: float,
    scan_metadata: Dict[str, Any],
):
    """scan_metadata is merged over the stored metadata, so verification survives a re-scan."""
    row = get_active_document(db, user_id, document_type)
    updated = False
    if row:
        row.front_image = front_image
        if back_image:
            row.back_image = back_image
        row.extracted_fields = extracted_fields
        row.ocr_confidence = ocr_confidence
        # reassign, JSON columns don't track in-place mutation
        row.scan_metadata = {**(row.scan_metadata or {}), **scan_metadata}
        row.updated_at = _now()
        updated = True
    else:
        row = UserDocumentRecord(
            user_id=user_id,
            document_type=document_type,
            front_image=front_image,
            back_image=back_image,
            extracted_fields=extracted_fields,
            ocr_confidence=ocr_confidence,
            scan_metadata={"verified": False, **scan_metadata},
            is_active=True,
        )
        db.add(row)

    db.commit()
    db.refresh(row)
    return row, updated


def mark_document_verified(db: Session, row: UserDocumentRecord, verifier_id: str) -> UserDocumentRecord:
    row.scan_metadata = {
        **(row.scan_metadata or {}),
        "verified": True,
        "verifiedBy": verifier_id,
        "verifiedAt": _now().isoformat(),
    }
    row.updated_at = _now()
    db.commit()
    db.refresh(row)
    return row


def deactivate_document(db: Session, user_id: str, document_type: str) -> bool:
    row = get_active_document(db, user_id, document_type)
    if not row:
        return False
    row.is_active = False
    row.updated_at = _now()
    db.commit()
    return True
