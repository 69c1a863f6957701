"""
Tests for configflow/catalog_sync/rollback_service.py
"""

import pytest


def _seed(*entries):
    from configflow.catalog_sync import sync_catalog
    return sync_catalog('full', lambda: list(entries))


class TestSnapshots:
    """Tests for create_snapshot() and get_snapshot()"""

    def test_snapshot_contains_active_entries(self, app, make_catalog_entry):
        """Deprecated rows are left out and hashes are kept"""
        from configflow.catalog_sync import create_snapshot, get_snapshot, start_sync
        from configflow.models import IntegrationCatalog

        _seed(make_catalog_entry('hue'), make_catalog_entry('tado'))
        _seed(make_catalog_entry('hue'))

        sync_id = start_sync('incremental')
        assert create_snapshot(sync_id) == 1

        snapshot = get_snapshot(sync_id)
        assert [entry['domain'] for entry in snapshot] == ['hue']
        assert snapshot[0]['version_hash'] == IntegrationCatalog.get_by_domain('hue').version_hash

    def test_unknown_sync(self, app):
        """Snapshots need an existing sync"""
        from configflow.catalog_sync import create_snapshot, get_snapshot

        with pytest.raises(ValueError):
            create_snapshot('missing')
        assert get_snapshot('missing') is None


class TestRollbackSync:
    """Tests for rollback_sync()"""

    def test_without_snapshot(self, app):
        """A sync without snapshot cannot be rolled back"""
        from configflow.catalog_sync import SnapshotNotFoundError, rollback_sync, start_sync

        sync_id = start_sync('full')
        with pytest.raises(SnapshotNotFoundError) as exc_info:
            rollback_sync(sync_id)
        assert str(exc_info.value) == f"No snapshot found for sync {sync_id}"

    def test_restores_previous_catalog(self, app, make_catalog_entry):
        """Updates are reverted, new rows removed and deprecations undone"""
        from configflow.catalog_sync import create_snapshot, perform_incremental_sync, rollback_sync, start_sync
        from configflow.models import CatalogSyncHistory, IntegrationCatalog

        _seed(make_catalog_entry('hue'), make_catalog_entry('tado'))
        hue_hash = IntegrationCatalog.get_by_domain('hue').version_hash

        sync_id = start_sync('incremental')
        create_snapshot(sync_id)
        perform_incremental_sync(sync_id, [
            make_catalog_entry('hue', name='Philips Hue'),
            make_catalog_entry('zha'),
        ])
        assert IntegrationCatalog.get_by_domain('tado').sync_status == 'deprecated'

        rollback_sync(sync_id)

        hue = IntegrationCatalog.get_by_domain('hue')
        assert hue.name == 'Hue'
        assert hue.version_hash == hue_hash
        assert IntegrationCatalog.get_by_domain('zha') is None
        assert IntegrationCatalog.get_by_domain('tado').sync_status == 'synced'
        assert CatalogSyncHistory.query.get(sync_id).status == 'cancelled'


class TestCleanupSnapshots:
    """Tests for cleanup_snapshots()"""

    def test_keeps_newest(self, app, make_catalog_entry):
        """Only keep_count snapshots survive"""
        from configflow.catalog_sync import cleanup_snapshots
        from configflow.models import CatalogSyncHistory

        for _ in range(3):
            _seed(make_catalog_entry('hue'))

        assert cleanup_snapshots(keep_count=1) == 2
        remaining = [h for h in CatalogSyncHistory.query.all() if (h.sync_metadata or {}).get('snapshot') is not None]
        assert len(remaining) == 1
        assert cleanup_snapshots(keep_count=1) == 0
