"""Errors that abort a package sync."""

from typing import Sequence

from package_sync.domain.package import Package


class SyncError(Exception):
    """Base class for fatal sync failures."""
    pass


class RegistryTransportError(SyncError):
    """Raised when the registry cannot be reached or answers with an error status."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class PageDecodeError(SyncError):
    """Raised when a page body is JSON but not a valid search page."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class PackagePersistError(SyncError):
    """Raised when the store cannot account for every package of a batch."""

    def __init__(self, message: str, packages: Sequence[Package]):
        super().__init__(message)
        self.packages = list(packages)
