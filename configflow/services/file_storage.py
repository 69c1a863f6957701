"""
File storage for "file" fields of a configuration step.

Uploads land in UPLOAD_FOLDER under a UUID name; a ConfigFile row keeps the
original name, MIME type and size and links the file to its config entry.
"""

import logging
import os
import uuid
from typing import Dict, Any, List, Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from configflow.database import db
from configflow.models import ConfigFile

logger = logging.getLogger(__name__)


class FileValidationError(Exception):
    """Raised when an upload violates the fileConfig of its field"""
    def __init__(self, message: str, field_name: str = None):
        self.field_name = field_name
        super().__init__(message)


def validate_file_type(mime_type: Optional[str], accept: Optional[List[str]] = None) -> bool:
    """Exact MIME match or a "type/*" wildcard; no accept list allows anything"""
    if not accept:
        return True

    mime_type = mime_type or ''
    for pattern in accept:
        if pattern == mime_type:
            return True
        if pattern.endswith('/*') and mime_type.startswith(pattern[:-1]):
            return True
    return False


def validate_file_size(size: int, max_size: Optional[int] = None) -> bool:
    if not max_size:
        return True
    return size <= max_size


def _upload_folder(upload_folder: Optional[str] = None) -> str:
    folder = upload_folder or current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    return folder


def _stream_size(file: FileStorage) -> int:
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def upload_file(
    file: FileStorage,
    field_name: str,
    field_schema: Dict[str, Any],
    user_id: Optional[str] = None,
    config_entry_id: Optional[str] = None,
    upload_folder: Optional[str] = None
) -> ConfigFile:
    """
    Validate and store an uploaded file.

    Raises:
        FileValidationError: MIME type not accepted or file too large
    """
    file_config = field_schema.get('fileConfig') or {}
    accept = file_config.get('accept')
    max_size = file_config.get('maxSize')
    mime_type = file.mimetype or None

    if accept and not validate_file_type(mime_type, accept):
        raise FileValidationError(
            f"File type {mime_type} is not allowed. Allowed types: {', '.join(accept)}",
            field_name
        )

    size = _stream_size(file)
    if max_size and not validate_file_size(size, max_size):
        raise FileValidationError(
            f"File size exceeds maximum allowed size of {max_size / (1024 * 1024):.2f} MB",
            field_name
        )

    original_filename = secure_filename(file.filename or '') or 'upload'
    extension = os.path.splitext(original_filename)[1]
    file_id = str(uuid.uuid4())
    stored_filename = f"{file_id}{extension}"
    file_path = os.path.join(_upload_folder(upload_folder), stored_filename)

    file.save(file_path)

    record = ConfigFile(
        id=file_id,
        config_entry_id=config_entry_id,
        field_name=field_name,
        original_filename=original_filename,
        stored_filename=stored_filename,
        file_path=file_path,
        mime_type=mime_type,
        file_size=size,
        uploaded_by=user_id,
    )
    db.session.add(record)

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        if os.path.exists(file_path):
            os.remove(file_path)
        raise

    logger.info(f"Stored upload {stored_filename} for field {field_name}")
    return record


def get_file(file_id: str) -> Optional[ConfigFile]:
    return ConfigFile.query.get(file_id)


def delete_file(file_id: str) -> None:
    """
    Delete a stored file and its metadata.

    Raises:
        ValueError: no file with that id
    """
    record = get_file(file_id)
    if record is None:
        raise ValueError(f"File with ID {file_id} not found")

    try:
        if os.path.exists(record.file_path):
            os.remove(record.file_path)
    except OSError as e:
        logger.error(f"Error deleting file {record.file_path}: {e}")

    db.session.delete(record)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def delete_files_for_config_entry(config_entry_id: str) -> int:
    """Returns the number of files deleted"""
    records = ConfigFile.query.filter_by(config_entry_id=config_entry_id).all()
    for record in records:
        delete_file(record.id)
    return len(records)
