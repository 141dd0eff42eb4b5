"""Packagist search API client."""

import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from package_sync.domain.errors import PageDecodeError, RegistryTransportError
from package_sync.domain.package import Package, SearchPage

logger = logging.getLogger(__name__)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class PackagistClient:
    """Client for the Packagist search endpoint."""

    DEFAULT_BASE_URL = "https://packagist.org"
    DEFAULT_TIMEOUT_SECONDS = 30
    USER_AGENT = "package-sync/1.0 (+https://packagist.org/apidoc)"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize Packagist client.

        Args:
            base_url: Registry root used to resolve relative page URLs.
                If None, uses PACKAGIST_BASE_URL env var.
            timeout: Per-request timeout in seconds. If None, uses PACKAGIST_TIMEOUT env var.
        """
        if base_url is None:
            base_url = os.getenv("PACKAGIST_BASE_URL", self.DEFAULT_BASE_URL)
        if timeout is None:
            timeout = float(os.getenv("PACKAGIST_TIMEOUT", self.DEFAULT_TIMEOUT_SECONDS))

        self.base_url = base_url
        self.timeout = timeout
        self.headers = {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }

    def fetch_page(self, url: str) -> Optional[SearchPage]:
        """
        Fetch and decode one page of search results.

        Args:
            url: Page URL, either relative to the base URL or absolute

        Returns:
            Decoded page, or None when the body is empty, not JSON, or the
            fetch failed with a non-transport error

        Raises:
            RegistryTransportError: If the request fails or returns an error status
            PageDecodeError: If the body is JSON but not a search page
        """
        target = urljoin(self.base_url, url)

        try:
            response = requests.get(target, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.critical(f"Request to {target} failed: {e}")
            raise RegistryTransportError(str(e), url=target) from e
        except Exception as e:
            logger.critical(f"Unexpected error fetching {target}: {e}")
            return None

        try:
            if not response.content or not response.content.strip():
                logger.warning(f"Empty response body from {target}")
                return None
            data = response.json()
        except ValueError as e:
            logger.critical(f"Could not decode response from {target}: {e}")
            return None
        except Exception as e:
            logger.critical(f"Unexpected error reading response from {target}: {e}")
            return None

        return self.parse_page(data, url=target)

    def parse_page(self, data: Any, url: str = "") -> Optional[SearchPage]:
        """
        Validate a decoded JSON body against the search page shape.

        Empty bodies (null, {}, []) mean there is nothing more to read.
        """
        if not data:
            return None
        if not isinstance(data, dict):
            raise PageDecodeError(f"Expected a JSON object, got {type(data).__name__}", url=url)

        total = data.get("total")
        if not _is_int(total):
            raise PageDecodeError("Field 'total' is missing or not an integer", url=url)

        results = data.get("results")
        if not isinstance(results, list):
            raise PageDecodeError("Field 'results' is missing or not a list", url=url)

        next_url = data.get("next")
        if next_url is not None and not isinstance(next_url, str):
            raise PageDecodeError("Field 'next' is not a string", url=url)

        packages = [self._parse_package(node, index, url) for index, node in enumerate(results)]

        return SearchPage(total=total, results=packages, next=next_url or None)

    @staticmethod
    def _parse_package(node: Dict[str, Any], index: int, url: str) -> Package:
        if not isinstance(node, dict):
            raise PageDecodeError(f"Result #{index} is not an object", url=url)

        name = node.get("name")
        if not isinstance(name, str) or not name:
            raise PageDecodeError(f"Result #{index} has no name", url=url)

        counts: List[int] = []
        for key in ("downloads", "favers"):
            value = node.get(key)
            if not _is_int(value):
                raise PageDecodeError(f"Result '{name}' has invalid '{key}'", url=url)
            counts.append(value)

        texts: List[str] = []
        for key in ("description", "url", "repository"):
            value = node.get(key)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise PageDecodeError(f"Result '{name}' has invalid '{key}'", url=url)
            texts.append(value)

        description, homepage, repository = texts
        downloads, favers = counts

        return Package(
            name=name,
            description=description,
            url=homepage,
            repository=repository,
            downloads=downloads,
            favers=favers,
        )
