"""
Shared pytest fixtures: a Flask app on in-memory SQLite and clean engine state
"""

import pytest

from configflow import create_app
from configflow.config import TestConfig
from configflow.database import db


@pytest.fixture
def app(tmp_path):
    """Flask app with fresh tables for every test"""
    class _Config(TestConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')

    app = create_app(_Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture(autouse=True)
def clean_engine_state():
    """Engine singletons hold caches and flags between tests"""
    from configflow.catalog_sync import reset_sync_state
    from configflow.flow_engine import clear_flow_caches, step_validator
    from configflow.flow_engine.dynamic_options import clear_options_cache

    clear_flow_caches()
    clear_options_cache()
    reset_sync_state()
    step_validator.strict_custom_validators = False
    yield
    clear_flow_caches()
    reset_sync_state()


@pytest.fixture
def make_catalog_entry():
    def _make(domain, **overrides):
        entry = {
            'domain': domain,
            'name': domain.replace('_', ' ').title(),
            'description': f"{domain} integration",
            'icon': 'mdi:puzzle',
            'supports_devices': True,
            'is_cloud': False,
            'flow_type': 'manual',
        }
        entry.update(overrides)
        return entry
    return _make
