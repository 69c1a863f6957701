"""
Tests for configflow/catalog_sync/sync_service.py
"""

import pytest


def _seed(*entries):
    from configflow.catalog_sync import sync_catalog
    return sync_catalog('full', lambda: list(entries))


def _changes(sync_id):
    from configflow.models import CatalogSyncChange

    rows = CatalogSyncChange.query.filter_by(sync_id=sync_id).all()
    return {row.domain: row for row in rows}


class TestSyncLock:
    """Tests for start_sync() and the process lock"""

    def test_second_start_rejected(self, app):
        """Only one sync runs at a time"""
        from configflow.catalog_sync import (
            SyncInProgressError,
            get_current_sync_id,
            is_sync_in_progress,
            start_sync,
        )

        sync_id = start_sync('full')
        assert is_sync_in_progress() is True
        assert get_current_sync_id() == sync_id

        with pytest.raises(SyncInProgressError) as exc_info:
            start_sync('incremental')
        assert exc_info.value.sync_id == sync_id
        assert str(exc_info.value) == 'Sync already in progress'

    def test_concurrent_starts_single_winner(self, app):
        """Threads racing into start_sync get exactly one lock"""
        import threading
        import time
        from unittest.mock import Mock, patch

        from configflow.catalog_sync import SyncInProgressError, start_sync

        barrier = threading.Barrier(5)
        started, rejected = [], []

        def slow_commit():
            time.sleep(0.05)

        def run():
            barrier.wait()
            try:
                started.append(start_sync('full'))
            except SyncInProgressError:
                rejected.append(True)

        with patch('configflow.catalog_sync.sync_service.db', Mock()), \
                patch('configflow.catalog_sync.sync_service.CatalogSyncHistory', Mock(return_value=Mock(id='sync-1'))), \
                patch('configflow.catalog_sync.sync_service._commit', side_effect=slow_commit):
            threads = [threading.Thread(target=run) for _ in range(5)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert started == ['sync-1']
        assert len(rejected) == 4

    def test_history_row_created(self, app):
        """A running history row is stored"""
        from configflow.catalog_sync import start_sync
        from configflow.models import CatalogSyncHistory

        sync_id = start_sync('incremental')
        history = CatalogSyncHistory.query.get(sync_id)
        assert history.status == 'running'
        assert history.sync_type == 'incremental'

    def test_invalid_type_does_not_lock(self, app):
        """Unknown sync types raise before taking the lock"""
        from configflow.catalog_sync import is_sync_in_progress, start_sync

        with pytest.raises(ValueError):
            start_sync('weekly')
        assert is_sync_in_progress() is False

    def test_complete_releases_lock(self, app):
        """complete_sync stores the counters and unlocks"""
        from configflow.catalog_sync import SyncResult, complete_sync, is_sync_in_progress, start_sync
        from configflow.models import CatalogSyncHistory

        sync_id = start_sync('full')
        result = SyncResult(sync_id=sync_id, total=3, new=1, updated=1)
        result.add_error('hue', RuntimeError('bad row'))
        complete_sync(sync_id, result)

        history = CatalogSyncHistory.query.get(sync_id)
        assert is_sync_in_progress() is False
        assert history.status == 'completed'
        assert history.total_integrations == 3
        assert history.error_count == 1
        assert history.error_details == [{'domain': 'hue', 'error': 'bad row'}]

    def test_fail_records_system_error(self, app):
        """fail_sync without partial result stores a system error"""
        from configflow.catalog_sync import fail_sync, is_sync_in_progress, start_sync
        from configflow.models import CatalogSyncHistory

        sync_id = start_sync('full')
        fail_sync(sync_id, RuntimeError('upstream down'))

        history = CatalogSyncHistory.query.get(sync_id)
        assert is_sync_in_progress() is False
        assert history.status == 'failed'
        assert history.error_details == [{'domain': 'system', 'error': 'upstream down'}]
        assert history.completed_at is not None


class TestIncrementalSync:
    """Tests for perform_incremental_sync()"""

    def test_only_changes_written(self, app, make_catalog_entry):
        """New, updated and deleted domains are written; unchanged ones are not"""
        from configflow.catalog_sync import perform_incremental_sync, start_sync
        from configflow.models import IntegrationCatalog

        _seed(make_catalog_entry('hue'), make_catalog_entry('nest'), make_catalog_entry('tado'))
        hue_before = IntegrationCatalog.get_by_domain('hue')
        hue_hash, hue_synced_at = hue_before.version_hash, hue_before.last_synced_at

        sync_id = start_sync('incremental')
        result = perform_incremental_sync(sync_id, [
            make_catalog_entry('hue'),
            make_catalog_entry('nest', name='Google Nest'),
            make_catalog_entry('zha'),
        ])

        assert (result.total, result.new, result.updated, result.deleted, result.errors) == (3, 1, 1, 1, 0)

        hue = IntegrationCatalog.get_by_domain('hue')
        assert hue.version_hash == hue_hash
        assert hue.last_synced_at == hue_synced_at
        assert IntegrationCatalog.get_by_domain('nest').name == 'Google Nest'
        assert IntegrationCatalog.get_by_domain('zha').sync_status == 'synced'
        assert IntegrationCatalog.get_by_domain('tado').sync_status == 'deprecated'

        changes = _changes(sync_id)
        assert set(changes) == {'nest', 'zha', 'tado'}
        assert changes['nest'].change_type == 'updated'
        assert changes['nest'].changed_fields == ['name']
        assert changes['nest'].previous_version_hash is not None
        assert changes['zha'].change_type == 'new'
        assert changes['tado'].change_type == 'deprecated'
        assert changes['tado'].new_version_hash is None

    def test_failing_entry_isolated(self, app, make_catalog_entry):
        """A broken entry is reported and the others are still written"""
        from configflow.catalog_sync import perform_incremental_sync, start_sync
        from configflow.models import IntegrationCatalog

        sync_id = start_sync('incremental')
        result = perform_incremental_sync(sync_id, [
            make_catalog_entry('broken', name=None),
            make_catalog_entry('hue'),
        ])

        assert result.errors == 1
        assert result.error_details[0]['domain'] == 'broken'
        assert IntegrationCatalog.get_by_domain('broken') is None
        assert IntegrationCatalog.get_by_domain('hue') is not None


class TestFullSync:
    """Tests for perform_full_sync()"""

    def test_full_sync(self, app, make_catalog_entry):
        """Changed rows are updated, unchanged refreshed and missing ones deprecated"""
        from configflow.catalog_sync import perform_full_sync, start_sync
        from configflow.models import IntegrationCatalog

        _seed(make_catalog_entry('hue'), make_catalog_entry('nest'), make_catalog_entry('tado'))

        sync_id = start_sync('full')
        result = perform_full_sync(sync_id, [
            make_catalog_entry('hue'),
            make_catalog_entry('nest', is_cloud=True),
        ])

        assert (result.new, result.updated, result.deleted) == (0, 1, 1)
        assert IntegrationCatalog.get_by_domain('nest').is_cloud is True
        assert IntegrationCatalog.get_by_domain('tado').sync_status == 'deprecated'

        changes = _changes(sync_id)
        assert set(changes) == {'nest', 'tado'}
        assert changes['nest'].changed_fields == ['full_sync']

    def test_deprecated_not_deprecated_twice(self, app, make_catalog_entry):
        """Already deprecated domains are left alone"""
        from configflow.catalog_sync import perform_full_sync, start_sync

        _seed(make_catalog_entry('hue'), make_catalog_entry('tado'))
        _seed(make_catalog_entry('hue'))

        sync_id = start_sync('full')
        result = perform_full_sync(sync_id, [make_catalog_entry('hue')])
        assert result.deleted == 0
        assert _changes(sync_id) == {}


class TestSyncResult:
    """Tests for SyncResult"""

    def test_to_dict(self):
        """Counters and errors are serialized"""
        from configflow.catalog_sync import SyncResult

        result = SyncResult(sync_id='s-1', total=2, new=2)
        result.add_error('hue', ValueError('nope'))
        data = result.to_dict()
        assert data['errors'] == 1
        assert data['error_details'] == [{'domain': 'hue', 'error': 'nope'}]
        assert data['status'] == 'completed'
