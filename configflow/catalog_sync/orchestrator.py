"""
Catalog Sync Orchestrator - single entry point for catalog sync runs.

    start -> snapshot -> fetch -> incremental/full sync -> complete

Fetching is injected so the same run works for the upstream manifest
crawler, a JSON seed file or a test fixture. On failure the snapshot is
restored and the sync is marked failed before the error propagates.
"""

import logging
from typing import Callable, Dict, Any, List, Optional

from configflow.catalog_sync.rollback_service import cleanup_snapshots, create_snapshot, rollback_sync
from configflow.catalog_sync.sync_service import (
    SyncResult,
    complete_sync,
    fail_sync,
    perform_full_sync,
    perform_incremental_sync,
    start_sync,
)
from configflow.database import db
from configflow.flow_engine import clear_flow_caches
from configflow.models import SyncType

logger = logging.getLogger(__name__)

FetchEntries = Callable[[], List[Dict[str, Any]]]


def sync_catalog(
    sync_type: str,
    fetch_entries: FetchEntries,
    keep_snapshots: Optional[int] = None
) -> SyncResult:
    """
    Run one catalog sync.

    Args:
        sync_type: 'full', 'incremental' or 'manual' (manual runs a full sync)
        fetch_entries: returns the upstream catalog entries
        keep_snapshots: when set, older snapshots are pruned after success

    Raises:
        SyncInProgressError: another sync is running
    """
    sync_id = start_sync(sync_type)
    snapshot_created = False

    try:
        create_snapshot(sync_id)
        snapshot_created = True

        entries = fetch_entries()
        logger.info(f"Catalog sync {sync_id}: fetched {len(entries)} entries")

        if sync_type == SyncType.INCREMENTAL.value:
            result = perform_incremental_sync(sync_id, entries)
        else:
            result = perform_full_sync(sync_id, entries)

        complete_sync(sync_id, result)
    except Exception as e:
        db.session.rollback()
        if snapshot_created:
            try:
                rollback_sync(sync_id)
            except Exception as rollback_error:
                logger.error(f"Rollback of sync {sync_id} failed: {rollback_error}")

        fail_sync(sync_id, e)
        clear_flow_caches()
        raise

    # Flow types and definitions may come from the catalog rows just written
    clear_flow_caches()

    if keep_snapshots is not None:
        cleanup_snapshots(keep_snapshots)

    return result
