"""
File Upload Utility - validate and store profile uploads.

Upload kinds:
- resume (.pdf, .doc, .docx) max 5MB
- profileImage (.jpg, .jpeg, .png, .webp) max 2MB
- portfolio (.pdf, .jpg, .jpeg, .png) max 10MB
- schoolLogo (.jpg, .jpeg, .png, .webp, .svg) max 1MB

PDF and DOCX documents are opened (PyPDF2 / python-docx) to reject
corrupted files before they are stored.
"""

import io
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import Tuple

from docx import Document
from fastapi import HTTPException, UploadFile
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from perfectmatch.core.config import get_settings

settings = get_settings()


@dataclass(frozen=True)
class FileValidationConfig:
    max_size_mb: float
    allowed_types: Tuple[str, ...]
    allowed_extensions: Tuple[str, ...]

    @property
    def max_size_bytes(self) -> int:
        return int(self.max_size_mb * 1024 * 1024)


FILE_CONFIGS = {
    "resume": FileValidationConfig(
        max_size_mb=5,
        allowed_types=(
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        ),
        allowed_extensions=(".pdf", ".doc", ".docx"),
    ),
    "profileImage": FileValidationConfig(
        max_size_mb=2,
        allowed_types=("image/jpeg", "image/png", "image/webp"),
        allowed_extensions=(".jpg", ".jpeg", ".png", ".webp"),
    ),
    "portfolio": FileValidationConfig(
        max_size_mb=10,
        allowed_types=("application/pdf", "image/jpeg", "image/png"),
        allowed_extensions=(".pdf", ".jpg", ".jpeg", ".png"),
    ),
    "schoolLogo": FileValidationConfig(
        max_size_mb=1,
        allowed_types=("image/jpeg", "image/png", "image/webp", "image/svg+xml"),
        allowed_extensions=(".jpg", ".jpeg", ".png", ".webp", ".svg"),
    ),
}

SUSPICIOUS_PATTERNS = (
    re.compile(r"\.\./"),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+=", re.IGNORECASE),
)


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def contains_suspicious_characters(filename: str) -> bool:
    return any(pattern.search(filename) for pattern in SUSPICIOUS_PATTERNS)


def sanitize_filename(filename: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", filename)
    cleaned = re.sub(r"\.{2,}", ".", cleaned)
    return cleaned[:100]


def generate_unique_filename(original_filename: str, user_id: int) -> str:
    """<user_id>/<name>-<millis>-<random>.<ext>"""
    sanitized = sanitize_filename(original_filename)
    stem, _, extension = sanitized.rpartition(".")
    if not stem:
        stem, extension = extension, ""
    timestamp = int(time.time() * 1000)
    random_part = secrets.token_hex(3)
    name = f"{stem}-{timestamp}-{random_part}"
    if extension:
        name += f".{extension}"
    return f"{user_id}/{name}"


def validate_upload(filename: str, content_type: str, size: int, config: FileValidationConfig) -> None:
    """Raise HTTPException if the file breaks the kind's rules."""
    if size > config.max_size_bytes:
        size_mb = size / (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=f"File size must be less than {config.max_size_mb:g}MB. Your file is {size_mb:.1f}MB."
        )

    allowed = ", ".join(config.allowed_extensions)
    if content_type not in config.allowed_types:
        raise HTTPException(status_code=400, detail=f"Invalid file type. Allowed types: {allowed}")

    if get_file_extension(filename) not in config.allowed_extensions:
        raise HTTPException(status_code=400, detail=f"Invalid file extension. Allowed: {allowed}")

    if contains_suspicious_characters(filename):
        raise HTTPException(status_code=400, detail="Filename contains invalid characters")


def check_document_readable(content: bytes, ext: str) -> None:
    """Open PDF/DOCX content to make sure it isn't corrupted."""
    if ext == ".pdf":
        try:
            reader = PdfReader(io.BytesIO(content))
            if len(reader.pages) == 0:
                raise HTTPException(status_code=400, detail="PDF has no pages")
        except (PdfReadError, ValueError, OSError) as e:
            raise HTTPException(status_code=400, detail=f"Error reading PDF: {e}")
    elif ext == ".docx":
        try:
            Document(io.BytesIO(content))
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"Error reading DOCX: {e}")


async def save_upload(file: UploadFile, kind: str, user_id: int) -> Tuple[str, str, int]:
    """
    Validate and store an uploaded file.

    Args:
        file: FastAPI UploadFile
        kind: one of FILE_CONFIGS keys
        user_id: owner, used as the storage folder

    Returns:
        Tuple of (public url path, stored filename, size in bytes)

    Raises:
        HTTPException on validation errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    config = FILE_CONFIGS.get(kind)
    if config is None:
        raise HTTPException(status_code=400, detail=f"Unknown upload kind '{kind}'")

    content = await file.read()
    validate_upload(file.filename, file.content_type or "", len(content), config)
    check_document_readable(content, get_file_extension(file.filename))

    relative_path = generate_unique_filename(file.filename, user_id)
    destination = os.path.join(settings.upload_dir, relative_path)
    os.makedirs(os.path.dirname(destination), exist_ok=True)
    with open(destination, "wb") as fh:
        fh.write(content)

    return f"/uploads/{relative_path}", os.path.basename(relative_path), len(content)


def get_upload_limits() -> dict:
    """Describe the accepted upload kinds."""
    return {
        kind: {
            "max_size_mb": config.max_size_mb,
            "allowed_extensions": list(config.allowed_extensions),
            "allowed_types": list(config.allowed_types),
        }
        for kind, config in FILE_CONFIGS.items()
    }
