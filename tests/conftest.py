"""Shared fakes for the sync tests."""

from typing import Dict, Iterable, List, Optional, Sequence, Union

import pytest

from package_sync.domain.package import Package, SearchPage


class FakePackageStore:
    """In-memory package store with soft-delete semantics."""

    def __init__(self) -> None:
        self.rows: Dict[str, dict] = {}
        self.prune_calls: List[set] = []
        self._next_id = 1

    def seed(self, package: Package, deleted: bool = False) -> int:
        row_id = self._next_id
        self._next_id += 1
        self.rows[package.name] = {"id": row_id, "package": package, "deleted": deleted}
        return row_id

    def upsert_packages(self, packages: Sequence[Package]) -> List[int]:
        ids: List[int] = []
        for package in packages:
            row = self.rows.get(package.name)
            if row is None:
                self.seed(package)
                row = self.rows[package.name]
            row["package"] = package
            row["deleted"] = False
            if row["id"] not in ids:
                ids.append(row["id"])
        return ids

    def soft_delete_missing(self, ids: Iterable[int]) -> int:
        keep = set(ids)
        self.prune_calls.append(keep)
        deleted = 0
        for row in self.rows.values():
            if not row["deleted"] and row["id"] not in keep:
                row["deleted"] = True
                deleted += 1
        return deleted

    def active(self) -> Dict[str, Package]:
        return {name: row["package"] for name, row in self.rows.items() if not row["deleted"]}

    def is_deleted(self, name: str) -> bool:
        return self.rows[name]["deleted"]


class FakePackageSource:
    """Serves canned pages keyed by URL and records every request."""

    def __init__(self, pages: Dict[str, Union[SearchPage, None, Exception]]) -> None:
        self.pages = pages
        self.requested: List[str] = []

    def fetch_page(self, url: str) -> Optional[SearchPage]:
        self.requested.append(url)
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        return page


def make_package(name: str, downloads: int = 0, favers: int = 0, description: str = "") -> Package:
    return Package(
        name=name,
        description=description,
        url=f"https://example.com/{name}",
        repository=f"https://github.com/{name}",
        downloads=downloads,
        favers=favers,
    )


@pytest.fixture
def store() -> FakePackageStore:
    return FakePackageStore()


@pytest.fixture
def package_factory():
    return make_package


@pytest.fixture
def source_factory():
    return FakePackageSource
