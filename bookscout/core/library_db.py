"""SQLite store for accounts and their saved books."""

import sqlite3
import threading
from typing import Any, Dict, List, Optional

from bookscout.core.admin_query import ListingQuery
from bookscout.core.logger import setup_logger

logger = setup_logger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id    TEXT PRIMARY KEY,
    email TEXT,
    name  TEXT
);

CREATE TABLE IF NOT EXISTS books (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT REFERENCES users(id),
    title           TEXT,
    author          TEXT,
    cover_url       TEXT,
    google_books_id TEXT,
    rating          INTEGER,
    notes           TEXT,
    tags            TEXT,
    created_at      DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_books_user_created_at
ON books (user_id, created_at DESC);
"""


class LibraryDB:
    """Thread-safe SQLite database of accounts and books."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._lock = threading.Lock()

    @property
    def db_path(self) -> str:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self) -> None:
        """Create database and tables if they don't exist."""
        with self._lock:
            conn = self._connect()
            try:
                conn.executescript(_CREATE_TABLES_SQL)
                self._migrate_book_columns(conn)
                conn.commit()
                # WAL mode must be changed outside an open transaction.
                conn.execute("PRAGMA journal_mode=WAL")
            finally:
                conn.close()

    def _migrate_book_columns(self, conn: sqlite3.Connection) -> None:
        """Add columns missing from databases created by early releases."""
        columns = conn.execute("PRAGMA table_info(books)").fetchall()
        column_names = {str(col["name"]) for col in columns}

        for column in ("notes", "tags"):
            if column not in column_names:
                conn.execute(f"ALTER TABLE books ADD COLUMN {column} TEXT")
                logger.info(f"Added missing books.{column} column")

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def get_account(self, account_id: str) -> Optional[Dict[str, Any]]:
        """Get an account by subject ID. Returns None if not found."""
        conn = self._connect()
        try:
            return self._get_account(conn, account_id)
        finally:
            conn.close()

    def _get_account(self, conn: sqlite3.Connection, account_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (account_id,)).fetchone()
        return dict(row) if row else None

    def upsert_account(self, account_id: str, name: Optional[str], email: Optional[str]) -> Dict[str, Any]:
        """Create the account or refresh its name/email in one statement."""
        with self._lock:
            conn = self._connect()
            try:
                conn.execute(
                    """INSERT INTO users (id, name, email) VALUES (?, ?, ?)
                       ON CONFLICT(id) DO UPDATE SET name = excluded.name, email = excluded.email""",
                    (account_id, name, email),
                )
                conn.commit()
                account = self._get_account(conn, account_id)
                if account is None:
                    raise ValueError(f"Account {account_id} not found after upsert")
                return account
            finally:
                conn.close()

    def refresh_account(self, account_id: str, name: Optional[str], email: Optional[str]) -> Optional[Dict[str, Any]]:
        """Refresh name/email of an existing account.

        Returns None, without writing anything, when the account is unknown.
        """
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    "UPDATE users SET name = ?, email = ? WHERE id = ?",
                    (name, email, account_id),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    return None
                return self._get_account(conn, account_id)
            finally:
                conn.close()

    def list_accounts(self) -> List[Dict[str, Any]]:
        """List all accounts ordered by name, then email."""
        conn = self._connect()
        try:
            rows = conn.execute("SELECT id, name, email FROM users ORDER BY name ASC, email ASC").fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def create_book(
        self,
        *,
        user_id: str,
        title: str,
        author: Optional[str] = None,
        cover_url: Optional[str] = None,
        google_books_id: Optional[str] = None,
        rating: Optional[int] = None,
        tags: str = "",
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Save a book for an account. Raises ValueError if the account does not exist."""
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    """INSERT INTO books (
                           user_id, title, author, cover_url, google_books_id, rating, tags, notes
                       )
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (user_id, title, author, cover_url, google_books_id, rating, tags, notes),
                )
                conn.commit()
                row = conn.execute("SELECT * FROM books WHERE id = ?", (cursor.lastrowid,)).fetchone()
                return dict(row)
            except sqlite3.IntegrityError as e:
                raise ValueError(f"Account {user_id} does not exist: {e}") from e
            finally:
                conn.close()

    def get_book(self, book_id: int, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a book owned by user_id. Returns None if missing or owned by someone else."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM books WHERE id = ? AND user_id = ?", (book_id, user_id)
            ).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def list_books(self, user_id: str) -> List[Dict[str, Any]]:
        """List an account's books, newest first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM books WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    def update_book(
        self,
        book_id: int,
        user_id: str,
        *,
        rating: Optional[int],
        tags: str,
        notes: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """Update review fields of an owned book. Returns None if nothing matched."""
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    "UPDATE books SET rating = ?, tags = ?, notes = ? WHERE id = ? AND user_id = ?",
                    (rating, tags, notes, book_id, user_id),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    return None
                row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
                return dict(row) if row else None
            finally:
                conn.close()

    def delete_book(self, book_id: int, user_id: str) -> bool:
        """Delete an owned book. Returns False if nothing matched."""
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    "DELETE FROM books WHERE id = ? AND user_id = ?", (book_id, user_id)
                )
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()

    def list_tag_strings(self, user_id: str) -> List[str]:
        """Return the stored tag string of every book the account owns."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT tags FROM books WHERE user_id = ?", (user_id,)
            ).fetchall()
            return [row["tags"] for row in rows if row["tags"]]
        finally:
            conn.close()

    def run_listing(self, query: ListingQuery) -> List[Dict[str, Any]]:
        """Execute a query produced by the admin query builder."""
        conn = self._connect()
        try:
            rows = conn.execute(query.sql, query.params).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
