"""
Catalog Sync Service - applies an upstream catalog to integration_catalog.

Two strategies:
    - incremental: only entries whose version hash changed are written
    - full: every entry is re-checked, domains missing upstream are deprecated

Only one sync runs per process at a time. Every touched domain is recorded
as a CatalogSyncChange row so the run can be audited or rolled back.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional

from configflow.catalog_sync.change_detector import detect_catalog_changes
from configflow.catalog_sync.version_tracker import calculate_version_hash, store_version_hash
from configflow.database import db
from configflow.models import (
    CatalogSyncChange,
    CatalogSyncHistory,
    ChangeType,
    IntegrationCatalog,
    SyncRunStatus,
    SyncStatus,
    SyncType,
)

logger = logging.getLogger(__name__)


class SyncInProgressError(Exception):
    """Raised when a sync starts while another one is running"""
    def __init__(self, sync_id: str = None):
        self.sync_id = sync_id
        super().__init__("Sync already in progress")


@dataclass
class SyncResult:
    sync_id: str
    status: str = SyncRunStatus.COMPLETED.value
    total: int = 0
    new: int = 0
    updated: int = 0
    deleted: int = 0
    errors: int = 0
    error_details: List[Dict[str, str]] = field(default_factory=list)
    # milliseconds
    duration: int = 0

    def add_error(self, domain: str, error: Exception) -> None:
        self.errors += 1
        self.error_details.append({'domain': domain, 'error': str(error)})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sync_id': self.sync_id,
            'status': self.status,
            'total': self.total,
            'new': self.new,
            'updated': self.updated,
            'deleted': self.deleted,
            'errors': self.errors,
            'error_details': list(self.error_details),
            'duration': self.duration,
        }


# Process-wide sync lock, released by whichever thread finishes the run
_sync_lock = threading.Lock()
_current_sync_id: Optional[str] = None


def reset_sync_state() -> None:
    global _current_sync_id
    _current_sync_id = None
    if _sync_lock.locked():
        _sync_lock.release()


def is_sync_in_progress() -> bool:
    return _sync_lock.locked()


def get_current_sync_id() -> Optional[str]:
    return _current_sync_id


def _commit() -> None:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def start_sync(sync_type: str) -> str:
    """
    Record a running sync and take the process lock.

    Raises:
        SyncInProgressError: another sync holds the lock
    """
    global _current_sync_id

    sync_type = SyncType(sync_type).value
    if not _sync_lock.acquire(blocking=False):
        raise SyncInProgressError(_current_sync_id)

    try:
        history = CatalogSyncHistory(
            sync_type=sync_type,
            status=SyncRunStatus.RUNNING.value,
            started_at=datetime.utcnow()
        )
        db.session.add(history)
        _commit()
    except Exception:
        reset_sync_state()
        raise

    _current_sync_id = history.id
    logger.info(f"Catalog sync {history.id} started ({sync_type})")
    return history.id


def complete_sync(sync_id: str, result: SyncResult) -> None:
    try:
        history = CatalogSyncHistory.query.get(sync_id)
        if history:
            history.status = result.status
            history.completed_at = datetime.utcnow()
            history.total_integrations = result.total
            history.new_integrations = result.new
            history.updated_integrations = result.updated
            history.deleted_integrations = result.deleted
            history.error_count = result.errors
            history.error_details = list(result.error_details)
            _commit()
    finally:
        reset_sync_state()

    logger.info(
        f"Catalog sync {sync_id} {result.status}: {result.new} new, {result.updated} updated, "
        f"{result.deleted} deleted, {result.errors} errors"
    )


def fail_sync(sync_id: str, error: Exception, partial_result: Optional[SyncResult] = None) -> None:
    """Mark a sync failed; keeps the partial counters when given"""
    if partial_result and partial_result.error_details:
        error_details = list(partial_result.error_details)
    else:
        error_details = [{'domain': 'system', 'error': str(error)}]

    try:
        history = CatalogSyncHistory.query.get(sync_id)
        if history:
            history.status = SyncRunStatus.FAILED.value
            history.completed_at = datetime.utcnow()
            history.error_count = len(error_details)
            history.error_details = error_details
            history.total_integrations = partial_result.total if partial_result else 0
            history.new_integrations = partial_result.new if partial_result else 0
            history.updated_integrations = partial_result.updated if partial_result else 0
            history.deleted_integrations = partial_result.deleted if partial_result else 0
            _commit()
    finally:
        reset_sync_state()

    logger.error(f"Catalog sync {sync_id} failed: {error}")


def record_change(
    sync_id: str,
    domain: str,
    change_type: str,
    previous_hash: Optional[str] = None,
    new_hash: Optional[str] = None,
    changed_fields: Optional[List[str]] = None,
    commit: bool = True
) -> CatalogSyncChange:
    change = CatalogSyncChange(
        sync_id=sync_id,
        domain=domain,
        change_type=ChangeType(change_type).value,
        previous_version_hash=previous_hash or None,
        new_version_hash=new_hash or None,
        changed_fields=list(changed_fields) if changed_fields else None,
    )
    db.session.add(change)
    if commit:
        _commit()
    return change


def _upsert_integration(entry: Dict[str, Any]) -> IntegrationCatalog:
    integration = IntegrationCatalog.get_by_domain(entry['domain'])
    if integration is None:
        integration = IntegrationCatalog(domain=entry['domain'])
        db.session.add(integration)

    integration.apply_entry(entry)
    integration.sync_status = SyncStatus.SYNCED.value
    db.session.flush()
    return integration


def _mark_deprecated(domain: str) -> Optional[str]:
    """Deprecate a domain, returning its last version hash"""
    integration = IntegrationCatalog.get_by_domain(domain)
    if integration is None:
        return None
    integration.sync_status = SyncStatus.DEPRECATED.value
    return integration.version_hash


def _import_new(sync_id: str, entry: Dict[str, Any]) -> None:
    new_hash = calculate_version_hash(entry)
    _upsert_integration(entry)
    store_version_hash(entry['domain'], new_hash, commit=False)
    record_change(sync_id, entry['domain'], ChangeType.NEW.value, None, new_hash, commit=False)
    _commit()


def _apply_update(sync_id: str, entry: Dict[str, Any], changed_fields: List[str]) -> None:
    new_hash = calculate_version_hash(entry)
    integration = IntegrationCatalog.get_by_domain(entry['domain'])
    old_hash = integration.version_hash if integration else None

    _upsert_integration(entry)
    store_version_hash(entry['domain'], new_hash, commit=False)
    record_change(
        sync_id, entry['domain'], ChangeType.UPDATED.value, old_hash, new_hash, changed_fields, commit=False
    )
    _commit()


def _deprecate(sync_id: str, domain: str) -> None:
    old_hash = _mark_deprecated(domain)
    record_change(sync_id, domain, ChangeType.DEPRECATED.value, old_hash, None, commit=False)
    _commit()


def perform_incremental_sync(sync_id: str, entries: List[Dict[str, Any]]) -> SyncResult:
    """
    Write only new and changed entries; deprecate domains gone upstream.

    A failing entry is recorded in the result and the sync carries on.
    """
    started = time.monotonic()
    result = SyncResult(sync_id=sync_id, total=len(entries))

    changes = detect_catalog_changes(entries)
    result.new = len(changes.new)
    result.updated = len(changes.updated)
    result.deleted = len(changes.deleted)

    for entry in changes.new:
        try:
            _import_new(sync_id, entry)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error importing {entry.get('domain')}: {e}")
            result.add_error(entry.get('domain'), e)

    for change in changes.updated:
        try:
            _apply_update(sync_id, change.new_entry, change.changed_fields)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error updating {change.domain}: {e}")
            result.add_error(change.domain, e)

    for entry in changes.deleted:
        try:
            _deprecate(sync_id, entry['domain'])
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error deprecating {entry['domain']}: {e}")
            result.add_error(entry['domain'], e)

    result.duration = int((time.monotonic() - started) * 1000)
    return result


def perform_full_sync(sync_id: str, entries: List[Dict[str, Any]]) -> SyncResult:
    """
    Re-check every entry against its stored hash and deprecate every active
    domain that is missing upstream. Unchanged entries only get their sync
    timestamp refreshed.
    """
    started = time.monotonic()
    result = SyncResult(sync_id=sync_id, total=len(entries))

    for entry in entries:
        domain = entry.get('domain')
        try:
            new_hash = calculate_version_hash(entry)
            existing = IntegrationCatalog.get_by_domain(domain)

            if existing is None:
                _import_new(sync_id, entry)
                result.new += 1
            elif existing.version_hash != new_hash:
                _apply_update(sync_id, entry, ['full_sync'])
                result.updated += 1
            else:
                store_version_hash(domain, new_hash)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error syncing {domain}: {e}")
            result.add_error(domain, e)

    upstream_domains = {entry.get('domain') for entry in entries}
    active = IntegrationCatalog.query.filter(
        IntegrationCatalog.sync_status != SyncStatus.DEPRECATED.value
    ).with_entities(IntegrationCatalog.domain).all()

    for row in active:
        if row.domain in upstream_domains:
            continue
        try:
            _deprecate(sync_id, row.domain)
            result.deleted += 1
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error deprecating {row.domain}: {e}")
            result.add_error(row.domain, e)

    result.duration = int((time.monotonic() - started) * 1000)
    return result
