"""
Helpers for reading multipart uploads into memory
"""

import logging
from typing import Dict, Iterable, Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, RequestEntityTooLarge
from werkzeug.utils import secure_filename

from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)

PDF_MIME_TYPES = {'application/pdf'}


def read_upload(file: Optional[FileStorage], allowed_mime_types: Iterable[str],
                max_size: Optional[int] = None, require_pdf: bool = False) -> Dict:
    """Read an uploaded file, enforcing size, mime type and optionally the PDF signature."""
    if not file or not file.filename:
        raise BadRequest('No file was received or the file is corrupt')

    mime_type = (file.mimetype or '').lower()
    if mime_type not in set(allowed_mime_types):
        logger.warning(f"Rejected upload {file.filename} with type {mime_type}")
        raise BadRequest(f'Unsupported file type: {mime_type or "unknown"}')

    file_data = file.read()
    if not file_data:
        raise BadRequest('Uploaded file is empty')

    max_size = max_size or current_app.config.get('MAX_FILE_SIZE', 10 * 1024 * 1024)
    if len(file_data) > max_size:
        raise RequestEntityTooLarge(f'File exceeds maximum size of {max_size} bytes')

    if require_pdf and not DataValidator.is_pdf(file_data):
        raise BadRequest('Only PDF files are allowed')

    filename = secure_filename(file.filename) or DataValidator.sanitize_file_name(file.filename)

    return {
        'filename': filename,
        'mime_type': mime_type,
        'file_size': len(file_data),
        'file_data': file_data
    }


def read_pdf_upload(file: Optional[FileStorage], max_size: Optional[int] = None) -> Dict:
    return read_upload(file, PDF_MIME_TYPES, max_size=max_size, require_pdf=True)
