"""Personal book list API routes.

Registers /api/books CRUD endpoints, tag suggestions, the review lookup and
catalog search. Every book endpoint is scoped to the signed-in account.
"""

import sqlite3
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from bookscout.core.access_control import current_identity, login_required
from bookscout.core.library_db import LibraryDB
from bookscout.core.logger import setup_logger
from bookscout.core.tags import SUGGESTED_TAGS, rank_tags, sanitize_tag_list
from bookscout.metadata_providers import CatalogUnavailable
from bookscout.metadata_providers.googlebooks import GoogleBooksProvider

logger = setup_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _request_data() -> Dict[str, Any]:
    """Return the request body from JSON or form encoding."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _string_field(data: Dict[str, Any], key: str) -> Optional[str]:
    """Return a body field as a string or None. Raises ValueError for other types."""
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"{key} must be a string")


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


def parse_rating(value: Any) -> int:
    """Parse a rating. Raises ValueError unless it is a whole number from 1 to 5."""
    if isinstance(value, bool):
        raise ValueError("Rating must be a whole number")
    try:
        rating = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError("Rating must be a whole number")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return rating


def _not_found():
    return jsonify({"error": "Book not found"}), 404


def register_book_routes(app: Flask, library_db: LibraryDB, catalog: GoogleBooksProvider) -> None:
    """Register book list, tag, review and search routes on the Flask app."""

    @app.route("/api/books", methods=["GET"])
    @login_required
    def list_books():
        """List the caller's books, newest first."""
        identity = current_identity()
        try:
            return jsonify(library_db.list_books(identity.user_id))
        except sqlite3.Error as e:
            logger.error_trace(f"List books error: {e}")
            return jsonify({"error": "Error fetching books"}), 500

    @app.route("/api/books", methods=["POST"])
    @login_required
    def create_book():
        """Save a book with a rating, tags and notes."""
        identity = current_identity()
        data = _request_data()

        try:
            title = _optional_text(_string_field(data, "title"))
            author = _optional_text(_string_field(data, "author"))
            cover_url = _optional_text(_string_field(data, "cover_url"))
            google_books_id = _optional_text(_string_field(data, "google_books_id"))
            tags = sanitize_tag_list(_string_field(data, "tags"))
            notes = _string_field(data, "notes")
            rating = parse_rating(data.get("rating"))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        if not title:
            return jsonify({"error": "Title is required"}), 400

        try:
            book = library_db.create_book(
                user_id=identity.user_id,
                title=title,
                author=author,
                cover_url=cover_url,
                google_books_id=google_books_id,
                rating=rating,
                tags=tags,
                notes=notes,
            )
        except ValueError as e:
            logger.warning(f"Save book rejected for {identity.user_id}: {e}")
            return jsonify({"error": "Account not found"}), 400
        except sqlite3.Error as e:
            logger.error_trace(f"Save book error: {e}")
            return jsonify({"error": "Error saving book"}), 500

        logger.info(f"User {identity.user_id} saved book {book['id']}")
        return jsonify(book), 201

    @app.route("/api/books/tags", methods=["GET"])
    def book_tags():
        """Ranked tag suggestions; the built-in list when nobody is signed in."""
        identity = current_identity()
        if identity is None:
            return jsonify(list(SUGGESTED_TAGS))

        try:
            tag_strings = library_db.list_tag_strings(identity.user_id)
        except sqlite3.Error as e:
            logger.error_trace(f"Fetch tags error: {e}")
            return jsonify({"error": "Failed to fetch tags"}), 500
        return jsonify(rank_tags(tag_strings))

    @app.route("/api/books/review/<google_id>", methods=["GET"])
    @login_required
    def review_book(google_id: str):
        """Catalog details used to pre-fill the review form."""
        try:
            book = catalog.get_book(google_id)
        except CatalogUnavailable as e:
            logger.warning(f"Review load failed for {google_id}: {e}")
            return jsonify({"error": "Error loading book details"}), 502

        if book is None:
            return _not_found()
        return jsonify(book.to_review_payload())

    @app.route("/api/books/<int:book_id>", methods=["GET"])
    @login_required
    def get_book(book_id: int):
        identity = current_identity()
        try:
            book = library_db.get_book(book_id, identity.user_id)
        except sqlite3.Error as e:
            logger.error_trace(f"Edit load error: {e}")
            return jsonify({"error": "Error loading book"}), 500

        if not book:
            return _not_found()
        return jsonify(book)

    @app.route("/api/books/<int:book_id>", methods=["PUT"])
    @login_required
    def update_book(book_id: int):
        """Update rating, tags and notes of one of the caller's books."""
        identity = current_identity()
        data = _request_data()
        try:
            rating = parse_rating(data.get("rating"))
            tags = sanitize_tag_list(_string_field(data, "tags"))
            notes = _string_field(data, "notes")
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        try:
            book = library_db.update_book(
                book_id,
                identity.user_id,
                rating=rating,
                tags=tags,
                notes=notes,
            )
        except sqlite3.Error as e:
            logger.error_trace(f"Update book error: {e}")
            return jsonify({"error": "Error updating book"}), 500

        if book is None:
            return _not_found()
        return jsonify(book)

    @app.route("/api/books/<int:book_id>", methods=["DELETE"])
    @login_required
    def delete_book(book_id: int):
        identity = current_identity()
        try:
            deleted = library_db.delete_book(book_id, identity.user_id)
        except sqlite3.Error as e:
            logger.error_trace(f"Delete book error: {e}")
            return jsonify({"error": "Error deleting book"}), 500

        if not deleted:
            return _not_found()
        logger.info(f"User {identity.user_id} deleted book {book_id}")
        return jsonify({"success": True})

    @app.route("/api/search", methods=["GET"])
    def search_catalog():
        """Search the external catalog. Short queries return an empty list."""
        query = request.args.get("q", "")
        try:
            books = catalog.search(query)
        except CatalogUnavailable as e:
            logger.warning(f"Search unavailable: {e}")
            return jsonify({"error": "Error fetching books"}), 502

        return jsonify([book.to_review_payload() for book in books])
