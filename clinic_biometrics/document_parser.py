# clinic_biometrics/document_parser.py
"""
Structured field extraction from raw OCR text of identity documents.

Fields are pulled with a static label -> pattern table; adding a field means
adding a row. Matching is case-insensitive and the first match per field
wins. Unmatched fields are left out (never filled with placeholders).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Pattern, Tuple


class DocumentType(str, Enum):
    ID_CARD = "id_card"
    PASSPORT = "passport"
    DRIVER_LICENSE = "driver_license"
    OTHER = "other"


# optional trailing dot, then an optional ":" or "#" delimiter on the same line
_LABEL_END = r"\b\.?[ \t]*[:#]?[ \t]*"
_DATE = r"(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4})"
# name tokens are joined by spaces or tabs only, so the next line's label is never swallowed
_NAME = r"([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)+)"


def _label(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


FIELD_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("fullName", _label(rf"\b(?:full[ \t]+name|name){_LABEL_END}{_NAME}")),
    ("dateOfBirth", _label(rf"\b(?:date[ \t]+of[ \t]+birth|dob|birth[ \t]+date){_LABEL_END}{_DATE}")),
    ("documentNumber", _label(
        rf"\b(?:(?:document|id|passport|licen[cs]e)(?:[ \t]+(?:number|no))?|number|no){_LABEL_END}"
        r"((?=[A-Z]*\d)[A-Z0-9]{6,15})\b"
    )),
    ("nationality", _label(rf"\b(?:nationality|country){_LABEL_END}([A-Z][a-z]+)")),
    ("expiryDate", _label(
        rf"\b(?:date[ \t]+of[ \t]+expiry|expiry(?:[ \t]+date)?|expires|valid[ \t]+until){_LABEL_END}{_DATE}"
    )),
    ("address", _label(rf"\baddress{_LABEL_END}([A-Z0-9][A-Z0-9 \t,.'/#-]*)")),
    ("issueDate", _label(rf"\b(?:date[ \t]+of[ \t]+issue|issue[ \t]+date|issued(?:[ \t]+on)?){_LABEL_END}{_DATE}")),
    ("gender", _label(rf"\b(?:sex|gender){_LABEL_END}(male|female|m|f)\b")),
]

# case-sensitive: "Capitalized Words", two or more
_NAME_LINE = re.compile(r"^[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+$")

BASE_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95
CONFIDENCE_WEIGHTS: Dict[str, float] = {
    "fullName": 0.15,
    "dateOfBirth": 0.10,
    "documentNumber": 0.15,
    "nationality": 0.05,
    "expiryDate": 0.05,
}


@dataclass
class ParsedDocument:
    document_type: DocumentType
    fields: Dict[str, str] = field(default_factory=dict)
    name_parts: Dict[str, str] = field(default_factory=dict)

    def all_fields(self) -> Dict[str, str]:
        return {**self.fields, **self.name_parts}


def split_name(full_name: str) -> Dict[str, str]:
    """First token -> firstName, last -> lastName, anything between -> middleName."""
    parts = full_name.split()
    if len(parts) < 2:
        return {}
    names = {"firstName": parts[0], "lastName": parts[-1]}
    if len(parts) > 2:
        names["middleName"] = " ".join(parts[1:-1])
    return names


def _first_line(text: str) -> Optional[str]:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return None


def parse_document_text(raw_text: str, document_type: DocumentType) -> ParsedDocument:
    parsed = ParsedDocument(document_type=DocumentType(document_type))
    text = raw_text or ""

    for name, pattern in FIELD_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1):
            value = m.group(1).strip()
            if value:
                parsed.fields[name] = value

    if "fullName" not in parsed.fields:
        first = _first_line(text)
        if first and _NAME_LINE.match(first):
            parsed.fields["fullName"] = first
            parsed.name_parts = split_name(first)

    return parsed


def score_confidence(fields: Dict[str, str]) -> float:
    """Heuristic OCR confidence: 0.5 base plus per-field bonuses, capped at 0.95."""
    confidence = BASE_CONFIDENCE
    for name, weight in CONFIDENCE_WEIGHTS.items():
        if fields.get(name):
            confidence += weight
    return round(min(confidence, MAX_CONFIDENCE), 4)


def merge_fields(front: Dict[str, str], back: Dict[str, str]) -> Dict[str, str]:
    """Back-of-card values win over anything matched on the front."""
    merged = dict(front)
    merged.update(back)
    return merged
