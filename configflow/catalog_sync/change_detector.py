"""
Change detection between an upstream catalog and the integration_catalog table.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from configflow.catalog_sync.version_tracker import calculate_version_hash, detect_changes
from configflow.models import IntegrationCatalog, SyncStatus

logger = logging.getLogger(__name__)


@dataclass
class UpdatedEntry:
    domain: str
    old_entry: Dict[str, Any]
    new_entry: Dict[str, Any]
    changed_fields: List[str]


@dataclass
class ChangeDetectionResult:
    new: List[Dict[str, Any]] = field(default_factory=list)
    updated: List[UpdatedEntry] = field(default_factory=list)
    # In the database but gone upstream
    deleted: List[Dict[str, Any]] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'new': [entry['domain'] for entry in self.new],
            'updated': [
                {'domain': change.domain, 'changed_fields': change.changed_fields}
                for change in self.updated
            ],
            'deleted': [entry['domain'] for entry in self.deleted],
            'unchanged': list(self.unchanged),
        }


def get_database_catalog() -> Dict[str, Tuple[Dict[str, Any], Optional[str]]]:
    """domain -> (entry, version_hash) for every non-deprecated integration"""
    rows = IntegrationCatalog.query.filter(
        IntegrationCatalog.sync_status != SyncStatus.DEPRECATED.value
    ).all()
    return {row.domain: (row.to_entry(), row.version_hash) for row in rows}


def compare_integration(
    old_entry: Dict[str, Any],
    new_entry: Dict[str, Any],
    old_hash: Optional[str],
    new_hash: str
) -> Tuple[bool, List[str]]:
    """
    Returns:
        (changed, changed_fields). A row without a stored hash is always
        changed, reported as ['new'].
    """
    if not old_hash:
        return True, ['new']

    if old_hash == new_hash:
        return False, []

    return True, detect_changes(old_hash, new_hash, old_entry, new_entry)


def detect_catalog_changes(entries: List[Dict[str, Any]]) -> ChangeDetectionResult:
    db_catalog = get_database_catalog()
    upstream_domains = {entry['domain'] for entry in entries}
    result = ChangeDetectionResult()

    for entry in entries:
        stored = db_catalog.get(entry['domain'])
        if stored is None:
            result.new.append(entry)
            continue

        old_entry, old_hash = stored
        changed, changed_fields = compare_integration(
            old_entry, entry, old_hash, calculate_version_hash(entry)
        )
        if changed:
            result.updated.append(UpdatedEntry(
                domain=entry['domain'],
                old_entry=old_entry,
                new_entry=entry,
                changed_fields=changed_fields,
            ))
        else:
            result.unchanged.append(entry['domain'])

    for domain, (old_entry, _) in db_catalog.items():
        if domain not in upstream_domains:
            result.deleted.append(old_entry)

    logger.debug(
        f"Catalog changes: {len(result.new)} new, {len(result.updated)} updated, "
        f"{len(result.deleted)} deleted, {len(result.unchanged)} unchanged"
    )
    return result


def get_all_database_domains() -> List[str]:
    rows = IntegrationCatalog.query.with_entities(IntegrationCatalog.domain).all()
    return [row.domain for row in rows]
