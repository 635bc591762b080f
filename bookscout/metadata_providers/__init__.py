"""Book catalog providers and the metadata they return."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

PLACEHOLDER_COVER_URL = "https://via.placeholder.com/128x192?text=No+Cover"
UNKNOWN_AUTHOR = "Unknown"


class CatalogUnavailable(Exception):
    """Raised when the external catalog cannot be reached or returns garbage."""


@dataclass
class BookMetadata:
    """Book details from a catalog provider."""
    provider: str
    provider_id: str
    title: str
    authors: List[str] = field(default_factory=list)
    cover_url: Optional[str] = None
    description: Optional[str] = None
    publisher: Optional[str] = None
    publish_year: Optional[int] = None
    isbn_10: Optional[str] = None
    isbn_13: Optional[str] = None
    language: Optional[str] = None
    genres: List[str] = field(default_factory=list)

    @property
    def primary_author(self) -> str:
        return self.authors[0] if self.authors else UNKNOWN_AUTHOR

    def to_review_payload(self) -> Dict[str, Any]:
        """Fields the review form needs to save an entry."""
        return {
            "google_id": self.provider_id,
            "title": self.title,
            "author": self.primary_author,
            "cover_url": self.cover_url or PLACEHOLDER_COVER_URL,
        }
