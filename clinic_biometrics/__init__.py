"""
Biometric identity verification for the clinic backend.

Face enrollment and recognition against an encrypted descriptor gallery,
and OCR-based field extraction from scanned identity documents.
"""

__version__ = "0.1.0"
