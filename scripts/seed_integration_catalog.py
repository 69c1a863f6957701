"""
Seed the integration catalog from a JSON file.

The file holds a list of catalog entries, or an object with an
"integrations" list. Each entry needs at least "domain" and "name".

Usage:
    python -m scripts.seed_integration_catalog integrations.json
    python -m scripts.seed_integration_catalog integrations.json --full
"""
import argparse
import json
import logging
import sys

from configflow import create_app
from configflow.catalog_sync import SyncInProgressError, sync_catalog
from configflow.config import Config
from configflow.models import SyncType

logger = logging.getLogger(__name__)


def load_entries(path):
    """Read and sanity-check catalog entries from a JSON file"""
    with open(path, encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('integrations', [])
    if not isinstance(data, list):
        raise ValueError("Catalog file must contain a list of integrations")

    entries = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or not entry.get('domain') or not entry.get('name'):
            logger.warning(f"Skipping entry {index}: domain and name are required")
            continue
        entries.append(entry)
    return entries


def main():
    parser = argparse.ArgumentParser(description='Seed integration_catalog from a JSON file')
    parser.add_argument('file', help='JSON file with catalog entries')
    parser.add_argument('--full', action='store_true', help='Full sync (deprecates domains missing from the file)')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    entries = load_entries(args.file)
    sync_type = SyncType.FULL.value if args.full else SyncType.INCREMENTAL.value

    app = create_app(Config)
    with app.app_context():
        try:
            result = sync_catalog(
                sync_type,
                lambda: entries,
                keep_snapshots=app.config.get('SNAPSHOT_KEEP_COUNT')
            )
        except SyncInProgressError as e:
            logger.error(str(e))
            return 1
        except Exception as e:
            logger.exception(f"Catalog seed failed: {e}")
            return 1

    logger.info(
        f"Seeded {result.total} integrations: {result.new} new, {result.updated} updated, "
        f"{result.deleted} deprecated, {result.errors} errors"
    )
    for detail in result.error_details:
        logger.warning(f"  {detail['domain']}: {detail['error']}")

    return 0 if result.errors == 0 else 2


if __name__ == '__main__':
    sys.exit(main())
