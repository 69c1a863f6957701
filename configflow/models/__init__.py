from .flow_definition import IntegrationFlowDefinition
from .catalog import IntegrationCatalog, SyncStatus, CATALOG_ENTRY_FIELDS
from .catalog_sync import (
    CatalogSyncHistory,
    CatalogSyncChange,
    SyncType,
    SyncRunStatus,
    ChangeType,
)
from .config_file import ConfigFile

__all__ = [
    'IntegrationFlowDefinition',
    'IntegrationCatalog',
    'SyncStatus',
    'CATALOG_ENTRY_FIELDS',
    'CatalogSyncHistory',
    'CatalogSyncChange',
    'SyncType',
    'SyncRunStatus',
    'ChangeType',
    'ConfigFile',
]
