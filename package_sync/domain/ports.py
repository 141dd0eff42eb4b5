"""Collaborator interfaces used by the sync service."""

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence

from package_sync.domain.package import Package, SearchPage


class PackageSource(Protocol):
    def fetch_page(self, url: str) -> Optional[SearchPage]: ...


class PackageStore(Protocol):
    def upsert_packages(self, packages: Sequence[Package]) -> List[int]: ...

    def soft_delete_missing(self, ids: Iterable[int]) -> int: ...
