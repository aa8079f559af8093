# clinic_biometrics/models.py
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.sql import func

from .db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), unique=True, nullable=False)
    email = Column(String(256), nullable=True, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(32), nullable=False, default="patient")
    pin_hash = Column(String(128), nullable=True)  # pbkdf2 "salt$hash", see encryption_utils


class FaceRecord(Base):
    __tablename__ = "user_faces"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)

    # AES-GCM output of the serialized descriptor, base64 text
    descriptor_ciphertext = Column(Text, nullable=False)
    descriptor_nonce = Column(String(64), nullable=False)

    source_image = Column(Text, nullable=True)  # base64 enrollment image
    confidence = Column(Float, nullable=False)  # assigned at enrollment, not a match score
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UserDocumentRecord(Base):
    __tablename__ = "user_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    document_type = Column(String(32), nullable=False)  # DocumentType value

    front_image = Column(Text, nullable=False)
    back_image = Column(Text, nullable=True)

    extracted_fields = Column(JSON, nullable=False, default=dict)
    ocr_confidence = Column(Float, nullable=False)
    # scannedAt, imageQuality, verified, verifiedBy, verifiedAt
    scan_metadata = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
