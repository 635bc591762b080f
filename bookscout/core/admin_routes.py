"""Admin API routes.

Registers /api/admin endpoints for the book registry, its CSV export, the
account list and the effective settings. All endpoints require an admin.
"""

import csv
import io
import sqlite3

from flask import Flask, Response, jsonify, request

from bookscout.core.access_control import current_settings, require_admin
from bookscout.core.admin_query import VALID_SORTS, build_entry_listing_query
from bookscout.core.library_db import LibraryDB
from bookscout.core.logger import setup_logger

logger = setup_logger(__name__)

EXPORT_FIELDS = ["id", "title", "author", "rating", "tags", "created_at", "user_email", "user_name"]
EXPORT_FILENAME = "books-registry.csv"


def _listing_query_from_args():
    return build_entry_listing_query(
        filter_text=request.args.get("filter"),
        user_id=request.args.get("user"),
        sort=request.args.get("sort"),
        order=request.args.get("order"),
    )


def _rows_to_csv(rows: list[dict]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()


def register_admin_routes(app: Flask, library_db: LibraryDB) -> None:
    """Register admin routes on the Flask app."""

    @app.route("/api/admin/books", methods=["GET"])
    @require_admin
    def admin_list_books():
        """All users' books with filter, owner and sort parameters."""
        query = _listing_query_from_args()

        # The owner dropdown is optional; a failure here should not hide the books
        try:
            all_users = library_db.list_accounts()
        except sqlite3.Error as e:
            logger.error(f"Error fetching users for filter: {e}")
            all_users = []

        try:
            books = library_db.run_listing(query)
        except sqlite3.Error as e:
            logger.error_trace(f"Admin books error: {e}")
            return jsonify({"error": "Error fetching books"}), 500

        return jsonify({
            "books": books,
            "users": all_users,
            "selected_user": request.args.get("user") or None,
            "filter": request.args.get("filter") or "",
            "sort": query.sort,
            "order": query.order,
            "valid_sorts": list(VALID_SORTS),
        })

    @app.route("/api/admin/books/export", methods=["GET"])
    @require_admin
    def admin_export_books():
        """CSV export of the registry, honoring the listing parameters."""
        try:
            rows = library_db.run_listing(_listing_query_from_args())
        except sqlite3.Error as e:
            logger.error_trace(f"CSV export error: {e}")
            return jsonify({"error": "Error exporting CSV"}), 500

        logger.info(f"Admin exported {len(rows)} books")
        return Response(
            _rows_to_csv(rows),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
        )

    @app.route("/api/admin/users", methods=["GET"])
    @require_admin
    def admin_list_users():
        try:
            return jsonify(library_db.list_accounts())
        except sqlite3.Error as e:
            logger.error_trace(f"Admin users error: {e}")
            return jsonify({"error": "Error fetching users"}), 500

    @app.route("/api/admin/settings", methods=["GET"])
    @require_admin
    def admin_settings():
        return jsonify(current_settings().admin_summary())
