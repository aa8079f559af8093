# clinic_biometrics/main.py
from __future__ import annotations

from typing import List, Optional

import jwt
from sqlalchemy import text
from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .schemas import (
    PinRequest,
    TokenResponse,
    FaceImageIn,
    RecognizeIn,
    FaceOut,
    MatchOut,
    CheckInOut,
    DeletedOut,
    DocumentScanIn,
    DocumentOut,
    UserOut,
)
from .config import Settings, get_settings
from .db import engine, Base, get_db
from .document_parser import DocumentType
from .document_scanner_service import DocumentScannerService
from .encryption_utils import verify_pin
from .errors import InvalidInput, NotFound
from .extraction import build_descriptor_extractor, build_text_extractor
from .face_recognition_service import FaceRecognitionService
from .logging_config import get_logger, setup_logging
from .models import FaceRecord, UserDocumentRecord
from .tokens import decode_token, issue_token, user_summary
from . import crud

_settings = get_settings()
setup_logging(_settings.service_name, _settings.debug)
logger = get_logger(__name__)

# ---------------- FASTAPI APP ----------------
APP = FastAPI(title="Clinic Biometrics", version="0.1.0")

# Dashboard dev servers
origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
]

APP.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables if they don't exist (dev only; use Alembic in prod)
Base.metadata.create_all(bind=engine)
logger.info(f"Biometric API ready (match threshold {_settings.match_threshold})")

bearer = HTTPBearer(auto_error=False)


# ---------------- DEPENDENCIES ----------------
def get_face_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> FaceRecognitionService:
    return FaceRecognitionService(db, build_descriptor_extractor(settings), settings)


def get_document_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> DocumentScannerService:
    return DocumentScannerService(db, build_text_extractor(settings), settings)


def current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = decode_token(credentials.credentials, settings)
    except jwt.PyJWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")
    return claims["sub"]


# ---------------- HELPERS ----------------
def face_out(row: FaceRecord) -> FaceOut:
    return FaceOut(
        id=row.id,
        userId=row.user_id,
        faceImage=row.source_image,
        confidence=row.confidence,
        isActive=row.is_active,
        updatedAt=row.updated_at,
    )


def document_out(row: UserDocumentRecord) -> DocumentOut:
    return DocumentOut(
        id=row.id,
        userId=row.user_id,
        documentType=row.document_type,
        frontImage=row.front_image,
        backImage=row.back_image,
        extractedData=row.extracted_fields or {},
        ocrConfidence=row.ocr_confidence,
        metadata=row.scan_metadata or {},
        isActive=row.is_active,
        createdAt=row.created_at,
        updatedAt=row.updated_at,
    )


# ---------------- HEALTH ----------------
@APP.get("/api/health/db")
def health_db(db: Session = Depends(get_db)):
    try:
        val = db.execute(text("SELECT 1")).scalar_one()
        return {"db": "ok", "result": val}
    except Exception as e:
        raise HTTPException(
            status_code=503, detail=f"db error: {e.__class__.__name__}: {e}"
        )


@APP.get("/api/health")
def health(settings: Settings = Depends(get_settings)):
    return {"ok": True, "threshold": settings.match_threshold}


# ---------------- PIN AUTH ----------------
@APP.post("/api/auth/pin", response_model=TokenResponse)
def check_pin(req: PinRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = crud.get_user(db, req.userId)
    if not user or not verify_pin(req.pin, user.pin_hash):
        raise HTTPException(status_code=401, detail="Invalid PIN")
    return TokenResponse(ok=True, token=issue_token(user, settings), user=UserOut(**user_summary(user)))


# ---------------- FACES ----------------
@APP.post("/api/biometric/face/register", response_model=FaceOut)
def register_face(
    payload: FaceImageIn,
    user_id: str = Depends(current_user_id),
    service: FaceRecognitionService = Depends(get_face_service),
):
    try:
        row = service.register_face(user_id, payload.faceImage)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return face_out(row)


@APP.post("/api/biometric/face/recognize", response_model=Optional[MatchOut])
def recognize_face(payload: RecognizeIn, service: FaceRecognitionService = Depends(get_face_service)):
    try:
        match = service.recognize_face(payload.faceImage, payload.threshold)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    if match is None:
        return None
    return MatchOut(
        userId=match.user_id,
        confidence=match.confidence,
        distance=match.distance,
        faceId=match.record.id,
        user=UserOut(**user_summary(match.user)) if match.user else None,
    )


@APP.post("/api/biometric/face/check-in", response_model=CheckInOut)
def check_in_with_face(payload: FaceImageIn, service: FaceRecognitionService = Depends(get_face_service)):
    try:
        result = service.check_in_with_face(payload.faceImage)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CheckInOut(
        success=result.success,
        message=result.message,
        user=UserOut(**result.user) if result.user else None,
        token=result.token,
        confidence=result.confidence,
    )


@APP.get("/api/biometric/face/my-face", response_model=Optional[FaceOut])
def get_my_face(
    user_id: str = Depends(current_user_id),
    service: FaceRecognitionService = Depends(get_face_service),
):
    row = service.get_face_data(user_id)
    return face_out(row) if row else None


@APP.delete("/api/biometric/face", response_model=DeletedOut)
def delete_my_face(
    user_id: str = Depends(current_user_id),
    service: FaceRecognitionService = Depends(get_face_service),
):
    return DeletedOut(ok=True, deleted=service.delete_face(user_id))


# ---------------- DOCUMENTS ----------------
@APP.post("/api/biometric/document/scan", response_model=DocumentOut)
def scan_document(
    payload: DocumentScanIn,
    user_id: str = Depends(current_user_id),
    service: DocumentScannerService = Depends(get_document_service),
):
    try:
        row = service.scan_document(user_id, payload.documentType, payload.frontImage, payload.backImage)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return document_out(row)


@APP.get("/api/biometric/document/my-documents", response_model=List[DocumentOut])
def get_my_documents(
    user_id: str = Depends(current_user_id),
    service: DocumentScannerService = Depends(get_document_service),
):
    return [document_out(row) for row in service.get_documents(user_id)]


@APP.get("/api/biometric/document/{document_type}", response_model=DocumentOut)
def get_my_document(
    document_type: DocumentType,
    user_id: str = Depends(current_user_id),
    service: DocumentScannerService = Depends(get_document_service),
):
    row = service.get_document(user_id, document_type)
    if not row:
        raise HTTPException(status_code=404, detail="Document not found")
    return document_out(row)


@APP.delete("/api/biometric/document/{document_type}", response_model=DeletedOut)
def delete_my_document(
    document_type: DocumentType,
    user_id: str = Depends(current_user_id),
    service: DocumentScannerService = Depends(get_document_service),
):
    return DeletedOut(ok=True, deleted=service.delete_document(user_id, document_type))


@APP.post("/api/biometric/document/{document_id}/verify", response_model=DocumentOut)
def verify_document(
    document_id: int,
    verifier_id: str = Depends(current_user_id),
    service: DocumentScannerService = Depends(get_document_service),
):
    try:
        row = service.verify_document(document_id, verifier_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return document_out(row)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(APP, host="0.0.0.0", port=8000)
