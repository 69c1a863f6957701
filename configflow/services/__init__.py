from configflow.services.file_storage import (
    FileValidationError,
    delete_file,
    delete_files_for_config_entry,
    get_file,
    upload_file,
    validate_file_size,
    validate_file_type,
)

__all__ = [
    'FileValidationError',
    'delete_file',
    'delete_files_for_config_entry',
    'get_file',
    'upload_file',
    'validate_file_size',
    'validate_file_type',
]
