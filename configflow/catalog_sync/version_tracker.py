"""
Version tracking for catalog entries.

Each integration row stores the sha256 of its tracked fields so a sync can
tell changed entries apart from unchanged ones without a field-by-field diff.
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import Dict, Any, List, Optional, Iterable

from configflow.database import db
from configflow.models import IntegrationCatalog, SyncStatus

logger = logging.getLogger(__name__)

# Compared one by one once two hashes differ
TRACKED_FIELDS = (
    'name',
    'description',
    'icon',
    'supports_devices',
    'is_cloud',
    'documentation_url',
    'flow_type',
    'flow_config',
    'handler_class',
    'metadata',
    'brand_image_url',
)

JSON_FIELDS = ('flow_config', 'metadata')


def _json_or_none(value: Any) -> Optional[str]:
    if not value:
        return None
    return json.dumps(value, sort_keys=True, separators=(',', ':'), default=str)


def _hash_payload(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'name': entry.get('name'),
        'description': entry.get('description') or None,
        'icon': entry.get('icon') or None,
        'supports_devices': bool(entry.get('supports_devices')),
        'is_cloud': bool(entry.get('is_cloud')),
        'documentation_url': entry.get('documentation_url') or None,
        'flow_type': entry.get('flow_type') or 'manual',
        'flow_config': _json_or_none(entry.get('flow_config')),
        'handler_class': entry.get('handler_class') or None,
        'metadata': _json_or_none(entry.get('metadata')),
        'brand_image_url': entry.get('brand_image_url') or None,
    }


def calculate_version_hash(entry: Dict[str, Any]) -> str:
    """sha256 hex digest of the tracked fields of a catalog entry"""
    payload = json.dumps(_hash_payload(entry), sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def detect_changes(
    old_hash: Optional[str],
    new_hash: Optional[str],
    old_entry: Dict[str, Any],
    new_entry: Dict[str, Any]
) -> List[str]:
    """
    Names of the tracked fields that differ between two entries.

    Equal hashes short-circuit to no changes. Empty values compare equal to
    missing ones and JSON fields are compared by content.
    """
    if old_hash and old_hash == new_hash:
        return []

    old_payload = _hash_payload(old_entry or {})
    new_payload = _hash_payload(new_entry or {})
    return [name for name in TRACKED_FIELDS if old_payload[name] != new_payload[name]]


def get_current_version_hash(domain: str) -> Optional[str]:
    integration = IntegrationCatalog.get_by_domain(domain)
    return integration.version_hash if integration else None


def store_version_hash(domain: str, version_hash: str, commit: bool = True) -> None:
    """Record the hash of a domain and mark it synced"""
    integration = IntegrationCatalog.get_by_domain(domain)
    if not integration:
        logger.warning(f"Cannot store version hash, integration not found: {domain}")
        return

    integration.version_hash = version_hash
    integration.last_synced_at = datetime.utcnow()
    integration.sync_status = SyncStatus.SYNCED.value

    if commit:
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


def get_version_hashes_for_domains(domains: Iterable[str]) -> Dict[str, Optional[str]]:
    domains = list(domains)
    if not domains:
        return {}

    rows = IntegrationCatalog.query.filter(IntegrationCatalog.domain.in_(domains)).all()
    return {row.domain: row.version_hash for row in rows}
