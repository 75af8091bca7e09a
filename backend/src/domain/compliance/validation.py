"""File and input validation for compliance document uploads."""

import os
import re
from typing import Optional, Tuple

from .document_types import MIN_UPLOAD_YEAR, MAX_UPLOAD_YEAR, parse_month


# Supported MIME types mapped to the extensions accepted for them
SUPPORTED_MIME_TYPES = {
    'application/pdf': {'.pdf'},
    'application/msword': {'.doc'},
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document': {'.docx'},
    'application/vnd.ms-excel': {'.xls'},
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': {'.xlsx'},
    'image/jpeg': {'.jpg', '.jpeg'},
    'image/png': {'.png'},
}

SUPPORTED_EXTENSIONS = {ext for exts in SUPPORTED_MIME_TYPES.values() for ext in exts}

# Default cap; the upload path passes the configured MAX_UPLOAD_SIZE_BYTES
MAX_FILE_SIZE = 10 * 1024 * 1024


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Check if MIME type is on the upload allow-list

    Example:
        >>> is_supported_mime_type('application/pdf')
        True
        >>> is_supported_mime_type('text/csv')
        False
    """
    return mime_type in SUPPORTED_MIME_TYPES


def validate_file_type(filename: str, mime_type: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate extension and MIME type together

    Returns:
        Tuple of (is_valid, error_message)
    """
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        return False, (
            f"Unsupported file extension '{ext or '(none)'}'. "
            f"Allowed: PDF, Word (.doc, .docx), Excel (.xls, .xlsx), JPEG, PNG"
        )

    if not is_supported_mime_type(mime_type):
        return False, f"Unsupported MIME type: {mime_type}"

    if ext not in SUPPORTED_MIME_TYPES[mime_type]:
        return False, f"File extension '{ext}' does not match MIME type {mime_type}"

    return True, None


def validate_file_size(size_bytes: int, max_size: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Example:
        >>> validate_file_size(1024)
        (True, None)
        >>> validate_file_size(0)
        (False, 'File is empty (0 bytes)')
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE

    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate a client-supplied filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No path traversal (../, ..\\)
    - No null bytes or control characters
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '..' in filename or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage

    Example:
        >>> sanitize_filename('bank statement (june).pdf')
        'bank_statement_june_.pdf'
    """
    filename = os.path.basename(filename)
    filename = re.sub(r'[^\w\s.-]', '_', filename)
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext

    return filename


def validate_upload_period(year: int, month: str) -> Tuple[bool, Optional[str]]:
    """Validate an upload period (year range and 3-letter month code)."""
    if year < MIN_UPLOAD_YEAR or year > MAX_UPLOAD_YEAR:
        return False, f"Year must be between {MIN_UPLOAD_YEAR} and {MAX_UPLOAD_YEAR}"

    if parse_month(month) is None:
        return False, f"Invalid month '{month}'. Use a 3-letter code such as Jan or Dec"

    return True, None


def normalize_remarks(remarks: Optional[str]) -> str:
    """Strip reviewer remarks; empty or whitespace-only remarks become ''."""
    return (remarks or "").strip()
