"""Private storage for identity proofs and payment screenshots.

Paths returned here are opaque and never browsable on their own; viewing a file
goes through ``signed_url`` which hands out a short-lived link.
"""
from __future__ import annotations

import os
import uuid
from datetime import timedelta

from jose import JWTError

from guesthouse.core.config import settings
from guesthouse.core.logging import get_logger
from guesthouse.core.security import DOCUMENT, create_document_token, decode_token

logger = get_logger(__name__)

DOCUMENT_TYPES = ("govt_id", "bank_id", "guest_id", "payment_screenshot")
ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


class DocumentError(ValueError):
    pass


def _use_gcs() -> bool:
    return bool(settings.GCS_BUCKET_NAME and settings.GOOGLE_APPLICATION_CREDENTIALS)


def _gcs_bucket():
    try:
        from google.cloud import storage  # type: ignore
    except ImportError as e:
        raise RuntimeError("google-cloud-storage is not installed. Install the gcs extra and retry") from e
    client = storage.Client()
    return client.bucket(settings.GCS_BUCKET_NAME)


def validate_document(document_type: str, content_type: str, size: int) -> str:
    """Return the file extension for an acceptable upload, else raise DocumentError."""
    if document_type not in DOCUMENT_TYPES:
        raise DocumentError(f"Invalid document type. Allowed: {', '.join(DOCUMENT_TYPES)}")
    ext = ALLOWED_CONTENT_TYPES.get((content_type or "").lower())
    if not ext:
        raise DocumentError("Invalid file type. Only JPEG, PNG, WEBP and PDF are allowed")
    if size <= 0:
        raise DocumentError("File is empty")
    if size > settings.DOCUMENT_MAX_BYTES:
        raise DocumentError(f"File too large. Maximum size is {settings.DOCUMENT_MAX_BYTES // (1024 * 1024)}MB")
    return ext


def store_document(*, owner_id: str, document_type: str, content_type: str, data: bytes) -> str:
    """Store an upload and return its private object path (``<owner>/<type>_<id>.<ext>``)."""
    ext = validate_document(document_type, content_type, len(data))
    object_key = f"{owner_id}/{document_type}_{uuid.uuid4().hex}.{ext}"

    if _use_gcs():
        blob = _gcs_bucket().blob(object_key)
        blob.upload_from_string(data, content_type=content_type)
        logger.info("document_stored", backend="gcs", document_type=document_type, size=len(data))
        return object_key

    path = local_path(object_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
    logger.info("document_stored", backend="local", document_type=document_type, size=len(data))
    return object_key


def local_path(object_key: str) -> str:
    base = os.path.abspath(settings.DOCUMENT_LOCAL_DIR or "./data/documents")
    path = os.path.abspath(os.path.join(base, object_key))
    if os.path.commonpath([base, path]) != base:
        raise DocumentError("Invalid document path")
    return path


def signed_url(object_key: str, expires_minutes: int | None = None) -> str:
    """Exchange a stored path for a time-limited URL."""
    if not object_key:
        raise DocumentError("path required")
    minutes = expires_minutes or settings.DOCUMENT_URL_EXPIRE_MINUTES
    if _use_gcs():
        blob = _gcs_bucket().blob(object_key)
        return blob.generate_signed_url(expiration=timedelta(minutes=minutes), method="GET")
    token = create_document_token(object_key, minutes)
    return f"{settings.API_PUBLIC_URL.rstrip('/')}/api/v1/documents/{token}"


def resolve_document_token(token: str) -> str:
    """Local download links: return the file path a valid token grants access to."""
    try:
        payload = decode_token(token)
    except JWTError as e:
        raise DocumentError("Invalid or expired link") from e
    if payload.get("type") != DOCUMENT or not payload.get("sub"):
        raise DocumentError("Invalid or expired link")
    path = local_path(payload["sub"])
    if not os.path.isfile(path):
        raise DocumentError("Document not found")
    return path
