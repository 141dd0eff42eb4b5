"""Database connection and package storage implementation."""

import logging
import psycopg2
from psycopg2.extras import execute_values
from psycopg2.pool import ThreadedConnectionPool
from typing import Dict, Iterable, List, Optional, Sequence
import os

from package_sync.domain.package import Package

logger = logging.getLogger(__name__)


class DatabaseRepository:
    """Repository for storing registry packages in PostgreSQL."""

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize database repository.

        Args:
            connection_string: PostgreSQL connection string. If None, uses env vars.
        """
        if connection_string is None:
            db_host = os.getenv("POSTGRES_HOST", "localhost")
            db_port = os.getenv("POSTGRES_PORT", "5432")
            db_name = os.getenv("POSTGRES_DB", "package_sync")
            db_user = os.getenv("POSTGRES_USER", "postgres")
            db_password = os.getenv("POSTGRES_PASSWORD", "postgres")

            connection_string = (
                f"host={db_host} port={db_port} dbname={db_name} "
                f"user={db_user} password={db_password}"
            )

        self.connection_string = connection_string
        self.pool: Optional[ThreadedConnectionPool] = None

    def connect(self):
        """Initialize connection pool."""
        try:
            self.pool = ThreadedConnectionPool(1, 2, self.connection_string)
            logger.info("Database connection pool created")
        except psycopg2.Error as e:
            logger.error(f"Error creating connection pool: {e}")
            raise

    def close(self):
        """Close connection pool."""
        if self.pool:
            self.pool.closeall()
            self.pool = None
            logger.info("Database connection pool closed")

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self.pool:
            self.connect()
        return self.pool.getconn()

    def _return_connection(self, conn):
        """Return a connection to the pool."""
        if self.pool:
            self.pool.putconn(conn)

    def initialize_schema(self):
        """Create the packages table if it doesn't exist."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS packages (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        description TEXT NOT NULL DEFAULT '',
                        url TEXT NOT NULL DEFAULT '',
                        repository TEXT NOT NULL DEFAULT '',
                        downloads BIGINT NOT NULL DEFAULT 0,
                        favers INTEGER NOT NULL DEFAULT 0,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                        deleted_at TIMESTAMPTZ NULL,
                        CONSTRAINT packages_name_unique UNIQUE (name)
                    );

                    CREATE INDEX IF NOT EXISTS idx_packages_deleted_at ON packages(deleted_at);
                """)
                conn.commit()
                logger.info("Database schema initialized")
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error initializing schema: {e}")
            raise
        finally:
            self._return_connection(conn)

    def upsert_packages(self, packages: Sequence[Package]) -> List[int]:
        """
        Insert or update packages by name and restore soft-deleted rows.

        Rows are always returned, including those whose fields did not change;
        updated_at only moves when a field changed or the row was restored.
        Duplicate names collapse to their last occurrence.

        Args:
            packages: Packages from one search page

        Returns:
            Row ids in first-seen name order. A name the database did not
            report back is left out.
        """
        if not packages:
            return []

        latest: Dict[str, Package] = {}
        for package in packages:
            latest[package.name] = package

        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                values = [
                    (
                        package.name,
                        package.description,
                        package.url,
                        package.repository,
                        package.downloads,
                        package.favers,
                    )
                    for package in latest.values()
                ]

                rows = execute_values(
                    cur,
                    """
                    INSERT INTO packages (
                        name, description, url, repository, downloads, favers
                    ) VALUES %s
                    ON CONFLICT (name)
                    DO UPDATE SET
                        description = EXCLUDED.description,
                        url = EXCLUDED.url,
                        repository = EXCLUDED.repository,
                        downloads = EXCLUDED.downloads,
                        favers = EXCLUDED.favers,
                        deleted_at = NULL,
                        updated_at = CASE
                            WHEN packages.deleted_at IS NOT NULL
                              OR (packages.description, packages.url, packages.repository,
                                  packages.downloads, packages.favers)
                                 IS DISTINCT FROM
                                 (EXCLUDED.description, EXCLUDED.url, EXCLUDED.repository,
                                  EXCLUDED.downloads, EXCLUDED.favers)
                            THEN CURRENT_TIMESTAMP
                            ELSE packages.updated_at
                        END
                    RETURNING id, name
                    """,
                    values,
                    template=None,
                    page_size=max(len(values), 1),
                    fetch=True
                )

                conn.commit()
                logger.info(f"Upserted {len(values)} packages")
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error upserting packages: {e}")
            raise
        finally:
            self._return_connection(conn)

        ids_by_name = {name: row_id for row_id, name in rows}
        return [ids_by_name[name] for name in latest if name in ids_by_name]

    def soft_delete_missing(self, ids: Iterable[int]) -> int:
        """
        Soft-delete every active package whose id is not in ids.

        Args:
            ids: Ids of packages seen during the current sync

        Returns:
            Number of packages soft-deleted
        """
        keep = sorted(set(ids))
        if not keep:
            return 0

        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE packages
                    SET deleted_at = CURRENT_TIMESTAMP,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE deleted_at IS NULL
                      AND NOT (id = ANY(%s))
                    """,
                    (keep,)
                )
                deleted = cur.rowcount
                conn.commit()
                logger.info(f"Soft-deleted {deleted} packages missing upstream")
                return deleted
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error soft-deleting packages: {e}")
            raise
        finally:
            self._return_connection(conn)

    def get_package_count(self, include_deleted: bool = False) -> int:
        """Get the number of packages in the database."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                if include_deleted:
                    cur.execute("SELECT COUNT(*) FROM packages")
                else:
                    cur.execute("SELECT COUNT(*) FROM packages WHERE deleted_at IS NULL")
                count = cur.fetchone()[0]
                return count
        except psycopg2.Error as e:
            logger.error(f"Error getting package count: {e}")
            raise
        finally:
            self._return_connection(conn)
