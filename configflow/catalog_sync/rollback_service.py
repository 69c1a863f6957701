"""
Rollback Service - catalog snapshots taken before a sync and their restore.

The snapshot is a list of catalog entries (plus their version hash) stored
in CatalogSyncHistory.metadata["snapshot"].
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from configflow.database import db
from configflow.models import (
    CatalogSyncChange,
    CatalogSyncHistory,
    ChangeType,
    IntegrationCatalog,
    SyncRunStatus,
    SyncStatus,
)

logger = logging.getLogger(__name__)


class SnapshotNotFoundError(Exception):
    """Raised when rolling back a sync that has no snapshot"""
    def __init__(self, sync_id: str):
        self.sync_id = sync_id
        super().__init__(f"No snapshot found for sync {sync_id}")


def create_snapshot(sync_id: str) -> int:
    """
    Store every non-deprecated catalog entry on the sync history row.

    Returns:
        Number of entries in the snapshot
    """
    rows = IntegrationCatalog.query.filter(
        IntegrationCatalog.sync_status != SyncStatus.DEPRECATED.value
    ).all()

    snapshot = []
    for row in rows:
        entry = row.to_entry()
        entry['version_hash'] = row.version_hash
        snapshot.append(entry)

    history = CatalogSyncHistory.query.get(sync_id)
    if history is None:
        raise ValueError(f"Sync not found: {sync_id}")

    # Reassign so the JSON column is flagged dirty
    metadata = dict(history.sync_metadata or {})
    metadata['snapshot'] = snapshot
    history.sync_metadata = metadata

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Snapshot for sync {sync_id}: {len(snapshot)} integrations")
    return len(snapshot)


def get_snapshot(sync_id: str) -> Optional[List[Dict[str, Any]]]:
    history = CatalogSyncHistory.query.get(sync_id)
    if history is None or not history.sync_metadata:
        return None
    return history.sync_metadata.get('snapshot')


def _restore_entry(entry: Dict[str, Any]) -> None:
    integration = IntegrationCatalog.get_by_domain(entry['domain'])
    if integration is None:
        integration = IntegrationCatalog(domain=entry['domain'])
        db.session.add(integration)

    integration.apply_entry(entry)
    integration.version_hash = entry.get('version_hash')
    integration.sync_status = SyncStatus.SYNCED.value


def rollback_sync(sync_id: str) -> None:
    """
    Restore the catalog to the snapshot of a sync and mark the sync cancelled.

    Snapshotted entries are written back with their hash, domains added by
    the sync are deleted and domains it deprecated are re-activated. All of
    it commits as one transaction.

    Raises:
        SnapshotNotFoundError: the sync has no snapshot
    """
    snapshot = get_snapshot(sync_id)
    if snapshot is None:
        raise SnapshotNotFoundError(sync_id)

    changes = CatalogSyncChange.query.filter_by(sync_id=sync_id).all()
    snapshot_domains = {entry['domain'] for entry in snapshot}

    try:
        for entry in snapshot:
            _restore_entry(entry)

        for change in changes:
            if change.change_type == ChangeType.NEW.value and change.domain not in snapshot_domains:
                IntegrationCatalog.query.filter_by(domain=change.domain).delete(synchronize_session='fetch')
            elif change.change_type == ChangeType.DEPRECATED.value and change.domain in snapshot_domains:
                integration = IntegrationCatalog.get_by_domain(change.domain)
                if integration:
                    integration.sync_status = SyncStatus.SYNCED.value

        history = CatalogSyncHistory.query.get(sync_id)
        history.status = SyncRunStatus.CANCELLED.value
        history.completed_at = datetime.utcnow()

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Rolled back sync {sync_id} ({len(snapshot)} integrations restored)")


def cleanup_snapshots(keep_count: int = 10) -> int:
    """
    Drop the snapshot of every sync but the newest keep_count that have one.

    Returns:
        Number of snapshots removed
    """
    histories = CatalogSyncHistory.query.order_by(CatalogSyncHistory.started_at.desc()).all()
    with_snapshot = [h for h in histories if (h.sync_metadata or {}).get('snapshot') is not None]

    removed = 0
    for history in with_snapshot[keep_count:]:
        metadata = dict(history.sync_metadata)
        metadata.pop('snapshot', None)
        history.sync_metadata = metadata
        removed += 1

    if removed:
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info(f"Removed {removed} old catalog snapshots")

    return removed
