from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Dict, Any

from .document_parser import DocumentType


# ---------------- AUTH ----------------
class PinRequest(BaseModel):
    userId: str = Field(min_length=1)
    pin: str = Field(min_length=4)

class UserOut(BaseModel):
    id: str
    email: Optional[EmailStr] = None
    firstName: str
    lastName: str
    role: str

class TokenResponse(BaseModel):
    ok: bool
    token: str
    user: UserOut


# ---------------- FACES ----------------
class FaceImageIn(BaseModel):
    faceImage: str = Field(min_length=1)  # base64, data URL prefix allowed

class RecognizeIn(FaceImageIn):
    threshold: Optional[float] = Field(default=None, gt=0, le=1)

class FaceOut(BaseModel):
    id: int
    userId: str
    faceImage: Optional[str] = None
    confidence: float
    isActive: bool
    updatedAt: Optional[datetime] = None

class MatchOut(BaseModel):
    userId: str
    confidence: float
    distance: float
    faceId: int
    user: Optional[UserOut] = None

class CheckInOut(BaseModel):
    success: bool
    message: str
    user: Optional[UserOut] = None
    token: Optional[str] = None
    confidence: Optional[float] = None

class DeletedOut(BaseModel):
    ok: bool
    deleted: bool


# ---------------- DOCUMENTS ----------------
class DocumentScanIn(BaseModel):
    documentType: DocumentType
    frontImage: str = Field(min_length=1)
    backImage: Optional[str] = None

class DocumentOut(BaseModel):
    id: int
    userId: str
    documentType: DocumentType
    frontImage: str
    backImage: Optional[str] = None
    extractedData: Dict[str, Any]
    ocrConfidence: float
    metadata: Dict[str, Any]
    isActive: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
