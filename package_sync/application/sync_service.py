"""Application service for syncing the Laravel package list."""

import logging
from dataclasses import dataclass
from typing import Optional, Set
from urllib.parse import unquote

from package_sync.domain.errors import PackagePersistError
from package_sync.domain.package import SearchPage
from package_sync.domain.ports import PackageSource, PackageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a completed sync."""

    pages: int
    synced: int
    pruned: int
    total: Optional[int] = None


class PackageSyncService:
    """Service for mirroring the registry's Laravel packages into the database."""

    FIRST_PAGE_PATH = "/search.json?tags=laravel&type=library&per_page=100&page=1"
    SUCCESS_MESSAGE = "Laravel package list syncs successfully."

    def __init__(self, package_source: PackageSource, package_store: PackageStore):
        """
        Initialize sync service.

        Args:
            package_source: Registry client providing search pages
            package_store: Storage for packages
        """
        self.package_source = package_source
        self.package_store = package_store

    def run(self) -> SyncResult:
        """
        Fetch every page, upsert its packages and soft-delete the ones not seen.

        Pages already saved stay saved if a later page fails.

        Returns:
            Counts for the completed sync

        Raises:
            SyncError: If fetching or saving a page fails fatally
        """
        url = self.FIRST_PAGE_PATH
        seen_ids: Set[int] = set()
        pages = 0
        total: Optional[int] = None

        while True:
            page = self.package_source.fetch_page(url)

            if page is None:
                logger.info(f"No data returned for {url}, stopping")
                break

            pages += 1
            total = page.total
            self._save(page, seen_ids)

            logger.info(
                f"Synced page {pages}: {len(page.results)} packages "
                f"({len(seen_ids)}/{page.total} seen so far)"
            )

            if not page.next:
                break

            url = unquote(page.next)

        pruned = 0
        if seen_ids:
            pruned = self.package_store.soft_delete_missing(seen_ids)

        logger.info(self.SUCCESS_MESSAGE)
        return SyncResult(pages=pages, synced=len(seen_ids), pruned=pruned, total=total)

    def _save(self, page: SearchPage, seen_ids: Set[int]):
        """Upsert one page of packages and record their row ids."""
        if not page.results:
            logger.warning("Page contained no packages")
            return

        ids = self.package_store.upsert_packages(page.results)

        expected = len({package.name for package in page.results})
        if len(ids) != expected:
            logger.critical(
                f"Could not create or update package: stored {len(ids)} of {expected}"
            )
            raise PackagePersistError(
                "Could not create or update package.", page.results
            )

        seen_ids.update(ids)
