"""Google Books catalog provider.

Uses the Google Books API v1 to search and retrieve book metadata.
An API key is optional; without one Google applies a lower anonymous quota.

API Documentation: https://developers.google.com/books/docs/v1/using
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from bookscout.core.logger import setup_logger
from bookscout.metadata_providers import BookMetadata, CatalogUnavailable

logger = setup_logger(__name__)

GOOGLE_BOOKS_BASE_URL = "https://www.googleapis.com/books/v1"
MIN_QUERY_LENGTH = 3
DEFAULT_LIMIT = 20


class GoogleBooksProvider:
    """Google Books catalog provider using the REST API."""

    name = "googlebooks"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 15):
        self.api_key = api_key or ""
        self.timeout = timeout
        self.session = requests.Session()

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> List[BookMetadata]:
        """Search volumes. Queries shorter than MIN_QUERY_LENGTH return nothing."""
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        params: Dict[str, Any] = {
            "q": query,
            "maxResults": min(limit, 40),  # Google max is 40
            "printType": "books",
        }
        result = self._make_request("/volumes", params)
        if result is None:
            return []

        items = result.get("items") or []
        if not isinstance(items, list):
            raise CatalogUnavailable("Malformed Google Books response: items is not a list")

        books = []
        for item in items:
            book = self._parse_volume(item)
            if book:
                books.append(book)

        logger.info(f"Google Books search '{query}' returned {len(books)} results")
        return books

    def get_book(self, volume_id: str) -> Optional[BookMetadata]:
        """Get book details by Google Books volume ID. None if the volume does not exist."""
        result = self._make_request(f"/volumes/{quote(volume_id, safe='')}", {})
        if result is None:
            return None

        book = self._parse_volume(result)
        if book is None:
            raise CatalogUnavailable(f"Malformed Google Books volume: {volume_id}")
        return book

    def _make_request(
        self, endpoint: str, params: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Make an API request. Returns None on 404, raises CatalogUnavailable otherwise."""
        if self.api_key:
            params["key"] = self.api_key

        url = f"{GOOGLE_BOOKS_BASE_URL}{endpoint}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout as e:
            logger.warning("Google Books API request timed out")
            raise CatalogUnavailable("Google Books API request timed out") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 404:
                logger.debug("Google Books: volume not found")
                return None
            if status == 403:
                # Quota exceeded or invalid API key
                logger.error("Google Books API: quota exceeded or invalid API key (HTTP 403)")
            else:
                logger.error(f"Google Books API HTTP error: {e}")
            raise CatalogUnavailable(f"Google Books API returned HTTP {status}") from e
        except requests.RequestException as e:
            logger.error(f"Google Books API request failed: {e}")
            raise CatalogUnavailable("Google Books API request failed") from e
        except ValueError as e:
            logger.error(f"Google Books API returned invalid JSON: {e}")
            raise CatalogUnavailable("Malformed Google Books response") from e

        if not isinstance(payload, dict):
            raise CatalogUnavailable("Malformed Google Books response")
        return payload

    def _parse_volume(self, volume: Any) -> Optional[BookMetadata]:
        """Parse a volume object into BookMetadata. None if it lacks an ID or title."""
        if not isinstance(volume, dict):
            return None

        volume_id = volume.get("id")
        volume_info = volume.get("volumeInfo") or {}
        if not isinstance(volume_info, dict):
            return None

        title = volume_info.get("title")
        if not volume_id or not isinstance(title, str) or not title:
            return None

        authors = volume_info.get("authors")
        authors = [a for a in authors if isinstance(a, str)] if isinstance(authors, list) else []

        # ISBNs - extract from industryIdentifiers
        isbn_10 = None
        isbn_13 = None
        identifiers = volume_info.get("industryIdentifiers")
        for identifier in identifiers if isinstance(identifiers, list) else []:
            if not isinstance(identifier, dict):
                continue
            id_type = identifier.get("type", "")
            id_value = identifier.get("identifier", "")
            if id_type == "ISBN_10" and not isbn_10:
                isbn_10 = id_value
            elif id_type == "ISBN_13" and not isbn_13:
                isbn_13 = id_value

        image_links = volume_info.get("imageLinks")
        if not isinstance(image_links, dict):
            image_links = {}
        cover_url = image_links.get("thumbnail") or image_links.get("smallThumbnail")
        if not isinstance(cover_url, str):
            cover_url = None
        # Remove edge=curl parameter and upgrade to https
        if cover_url:
            cover_url = cover_url.replace("&edge=curl", "").replace("http://", "https://")

        publish_year = None
        published_date = volume_info.get("publishedDate", "")
        if published_date:
            try:
                publish_year = int(published_date[:4])
            except (ValueError, TypeError):
                pass

        categories = volume_info.get("categories")
        if not isinstance(categories, list):
            categories = []

        return BookMetadata(
            provider=self.name,
            provider_id=str(volume_id),
            title=title,
            authors=authors,
            cover_url=cover_url,
            description=volume_info.get("description"),
            publisher=volume_info.get("publisher"),
            publish_year=publish_year,
            isbn_10=isbn_10,
            isbn_13=isbn_13,
            language=volume_info.get("language"),
            genres=[c for c in categories if isinstance(c, str)][:5],
        )
