"""Domain entities for registry packages."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Package:
    """Immutable package entity as advertised by the registry."""

    name: str
    description: str
    url: str
    repository: str
    downloads: int
    favers: int


@dataclass(frozen=True)
class SearchPage:
    """One page of registry search results."""

    total: int
    results: List[Package] = field(default_factory=list)
    next: Optional[str] = None
