#!/usr/bin/env python3
"""Script to initialize the packages table."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from package_sync.infrastructure.database import DatabaseRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Initialize database schema."""
    db_repo = DatabaseRepository()
    try:
        db_repo.connect()
        db_repo.initialize_schema()
        logger.info("Packages table setup completed successfully")
        return 0
    except Exception as e:
        logger.error(f"Failed to setup packages table: {e}")
        return 1
    finally:
        db_repo.close()


if __name__ == "__main__":
    sys.exit(main())
