#!/usr/bin/env python3
"""package:sync:list - sync the Laravel package list from Packagist."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from package_sync.infrastructure.registry_client import PackagistClient
from package_sync.infrastructure.database import DatabaseRepository
from package_sync.application.sync_service import PackageSyncService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Sync Laravel package list."""
    db_repository = DatabaseRepository()
    try:
        registry_client = PackagistClient()
        db_repository.connect()

        # Ensure schema is initialized
        db_repository.initialize_schema()

        sync_service = PackageSyncService(registry_client, db_repository)
        result = sync_service.run()

        active_count = db_repository.get_package_count()
        logger.info(
            f"Sync completed: {result.pages} pages, {result.synced} packages synced, "
            f"{result.pruned} pruned, {result.total} advertised upstream. "
            f"Active packages in database: {active_count}"
        )
        return 0

    except Exception as e:
        logger.error(f"Package sync failed: {e}", exc_info=True)
        return 1
    finally:
        db_repository.close()


if __name__ == "__main__":
    sys.exit(main())
