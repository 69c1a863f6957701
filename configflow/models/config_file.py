import uuid
from datetime import datetime
from configflow.database import db


class ConfigFile(db.Model):
    """Metadata for a file uploaded through a "file" field during configuration"""
    __tablename__ = 'config_files'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Null while the config entry is still being created
    config_entry_id = db.Column(db.String(36), nullable=True, index=True)
    field_name = db.Column(db.String(255), nullable=False, index=True)
    original_filename = db.Column(db.String(255), nullable=False)
    stored_filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.Text, nullable=False)
    mime_type = db.Column(db.String(100), nullable=True)
    file_size = db.Column(db.BigInteger, nullable=True)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)
    uploaded_by = db.Column(db.String(36), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'config_entry_id': self.config_entry_id,
            'field_name': self.field_name,
            'original_filename': self.original_filename,
            'stored_filename': self.stored_filename,
            'mime_type': self.mime_type,
            'file_size': self.file_size,
            'uploaded_at': self.uploaded_at.isoformat() if self.uploaded_at else None,
            'uploaded_by': self.uploaded_by,
        }
