"""Helper utilities."""

import secrets
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from glitchlab.core.exceptions import ValidationFailed
from glitchlab.utils.constants import DEFAULT_LANGUAGE, EMAIL_LANGUAGES, UNKNOWN_WORKSHOP


def generate_verification_code() -> str:
    """Generate a 6-digit numeric verification code."""
    return str(100000 + secrets.randbelow(900000))


def parse_object_id(value: Any, label: str = "ID") -> ObjectId:
    """Parse an ObjectId, raising a 400 on malformed input."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(str(value)):
        raise ValidationFailed(f"Invalid {label} format")
    return ObjectId(str(value))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def resolve_language(language: Optional[str]) -> str:
    """Fall back to English for unknown languages."""
    return language if language in EMAIL_LANGUAGES else DEFAULT_LANGUAGE


def localized(translations: Optional[Dict[str, Any]], language: str, fallback: Optional[str] = None) -> Optional[str]:
    """Pick a translation for ``language``, else the fallback."""
    if translations and translations.get(language):
        return translations[language]
    return fallback


def workshop_display_name(workshop: Optional[Dict[str, Any]], language: Optional[str] = None) -> str:
    """
    Name of a workshop, preferring the ``language`` translation when given,
    then the plain name, then any translation.
    """
    if not workshop:
        return UNKNOWN_WORKSHOP
    translations = workshop.get("nameTranslations") or {}
    return (
        (translations.get(language) if language else None)
        or workshop.get("name")
        or translations.get("en")
        or translations.get("it")
        or UNKNOWN_WORKSHOP
    )


def serialize_doc(doc: Any) -> Any:
    """Convert a MongoDB document into JSON-friendly data."""
    if isinstance(doc, dict):
        return {k: serialize_doc(v) for k, v in doc.items()}
    if isinstance(doc, list):
        return [serialize_doc(v) for v in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    return doc
