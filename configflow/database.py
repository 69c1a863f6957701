from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.dialects.postgresql import JSONB

db = SQLAlchemy()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = db.JSON().with_variant(JSONB(), 'postgresql')


def init_db(app):
    """Register models and create tables when AUTO_CREATE_TABLES is set"""
    from configflow import models  # noqa: F401

    if app.config.get('AUTO_CREATE_TABLES'):
        with app.app_context():
            db.create_all()
