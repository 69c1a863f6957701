"""
Catalog sync pipeline - keeps integration_catalog in step with an upstream
integration list, with per-domain change history and snapshot rollback.
"""

from configflow.catalog_sync.version_tracker import (
    calculate_version_hash,
    detect_changes,
    get_current_version_hash,
    get_version_hashes_for_domains,
    store_version_hash,
)
from configflow.catalog_sync.change_detector import (
    ChangeDetectionResult,
    compare_integration,
    detect_catalog_changes,
    get_all_database_domains,
    get_database_catalog,
)
from configflow.catalog_sync.sync_service import (
    SyncInProgressError,
    SyncResult,
    complete_sync,
    fail_sync,
    get_current_sync_id,
    is_sync_in_progress,
    perform_full_sync,
    perform_incremental_sync,
    record_change,
    reset_sync_state,
    start_sync,
)
from configflow.catalog_sync.rollback_service import (
    SnapshotNotFoundError,
    cleanup_snapshots,
    create_snapshot,
    get_snapshot,
    rollback_sync,
)
from configflow.catalog_sync.orchestrator import sync_catalog

__all__ = [
    'calculate_version_hash',
    'detect_changes',
    'get_current_version_hash',
    'get_version_hashes_for_domains',
    'store_version_hash',
    'ChangeDetectionResult',
    'compare_integration',
    'detect_catalog_changes',
    'get_all_database_domains',
    'get_database_catalog',
    'SyncInProgressError',
    'SyncResult',
    'complete_sync',
    'fail_sync',
    'get_current_sync_id',
    'is_sync_in_progress',
    'perform_full_sync',
    'perform_incremental_sync',
    'record_change',
    'reset_sync_state',
    'start_sync',
    'SnapshotNotFoundError',
    'cleanup_snapshots',
    'create_snapshot',
    'get_snapshot',
    'rollback_sync',
    'sync_catalog',
]
