"""Google Books API client for catalog search.

The volumes endpoint (googleapis.com/books/v1/volumes) returns book
metadata for a free-text query:
- Title and authors
- Industry identifiers (ISBN-10 / ISBN-13)
- Thumbnail cover links
- Descriptions

An API key is optional for low-volume use.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

from ..config import DEFAULT_CATALOG_URL
from ..db.schemas import (
    NO_DESCRIPTION,
    PLACEHOLDER_COVER,
    UNKNOWN_AUTHOR,
    UNKNOWN_ISBN,
    SearchResultItem,
)
from ..errors import CatalogError

logger = logging.getLogger(__name__)


@dataclass
class CatalogItem:
    """A volume returned by Google Books search."""

    external_id: str
    title: str
    authors: list[str] = field(default_factory=list)
    thumbnail_uri: Optional[str] = None
    isbn: Optional[str] = None
    description: Optional[str] = None

    def to_search_result(self) -> SearchResultItem:
        """Convert to a SearchResultItem, filling display placeholders."""
        return SearchResultItem(
            external_id=self.external_id,
            title=self.title,
            authors=", ".join(self.authors) if self.authors else UNKNOWN_AUTHOR,
            cover=self.thumbnail_uri or PLACEHOLDER_COVER,
            isbn=self.isbn or UNKNOWN_ISBN,
            description=self.description or NO_DESCRIPTION,
        )


class GoogleBooksClient:
    """Client for the Google Books volumes API."""

    def __init__(
        self,
        base_url: str = DEFAULT_CATALOG_URL,
        api_key: Optional[str] = None,
        timeout: int = 10,
    ):
        """Initialize client.

        Args:
            base_url: Volumes endpoint URL
            api_key: Optional Google API key
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": "readshelf/0.1"})

    def _get(self, params: dict) -> dict:
        """Make GET request with error handling."""
        try:
            response = self._session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            raise CatalogError("Request timed out")
        except requests.exceptions.HTTPError as e:
            raise CatalogError(f"HTTP error: {e.response.status_code}")
        except requests.exceptions.RequestException as e:
            raise CatalogError(f"Request failed: {e}")
        except ValueError as e:
            raise CatalogError(f"Invalid response body: {e}")

        if not isinstance(data, dict):
            raise CatalogError("Invalid response body: expected a JSON object")
        return data

    def search(self, query: str, max_results: int = 5) -> list[CatalogItem]:
        """Search volumes by free text.

        Args:
            query: Search query
            max_results: Maximum results to return (the API caps this at 40)

        Returns:
            List of CatalogItem objects

        Raises:
            CatalogError: If the request fails
        """
        params = {"q": query, "maxResults": max(1, min(max_results, 40))}
        if self.api_key:
            params["key"] = self.api_key

        data = self._get(params)
        logger.debug("Catalog returned %d items for %r", len(data.get("items") or []), query)

        results = []
        for volume in data.get("items") or []:
            item = self._volume_to_item(volume)
            if item:
                results.append(item)
        return results

    def _volume_to_item(self, volume: dict) -> Optional[CatalogItem]:
        """Convert a volume resource to CatalogItem."""
        if not isinstance(volume, dict):
            return None
        info = volume.get("volumeInfo") or {}
        title = info.get("title")
        if not isinstance(title, str) or not title.strip():
            return None

        # First industry identifier, whatever its type
        identifiers = info.get("industryIdentifiers") or []
        isbn = identifiers[0].get("identifier") if identifiers else None

        image_links = info.get("imageLinks") or {}

        return CatalogItem(
            external_id=volume.get("id", ""),
            title=title,
            authors=list(info.get("authors") or []),
            thumbnail_uri=image_links.get("thumbnail"),
            isbn=isbn,
            description=info.get("description"),
        )
