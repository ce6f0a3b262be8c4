"""Repository for User persistence."""

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from subdomain_billing.domain.models.user import User


class UserRepository:
    """Repository for managing User entities in SQLite."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        """Create users table if it doesn't exist and migrate schema if needed."""
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT UNIQUE NOT NULL,
                    first_name TEXT,
                    last_name TEXT,
                    email_verified INTEGER DEFAULT 0,
                    stripe_customer_id TEXT UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            # Older databases predate Stripe customers
            cursor = conn.execute("PRAGMA table_info(users)")
            existing_columns = {row[1] for row in cursor.fetchall()}
            if "stripe_customer_id" not in existing_columns:
                conn.execute("ALTER TABLE users ADD COLUMN stripe_customer_id TEXT")

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)"
            )

    def create(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email_verified: bool = False,
        stripe_customer_id: Optional[str] = None,
    ) -> User:
        """Create a new user."""
        now = datetime.now(timezone.utc).isoformat()

        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            cursor = conn.execute(
                """
                INSERT INTO users (
                    email, first_name, last_name, email_verified,
                    stripe_customer_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    email,
                    first_name,
                    last_name,
                    int(email_verified),
                    stripe_customer_id,
                    now,
                    now,
                ),
            )
            user_id = cursor.lastrowid

        return User(
            id=user_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            email_verified=email_verified,
            stripe_customer_id=stripe_customer_id,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        return self._fetch_one("SELECT * FROM users WHERE email = ?", (email,))

    def set_stripe_customer_id(self, user_id: int, stripe_customer_id: str) -> None:
        """Attach a Stripe customer to the user."""
        now = datetime.now(timezone.utc).isoformat()
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute(
                "UPDATE users SET stripe_customer_id = ?, updated_at = ? WHERE id = ?",
                (stripe_customer_id, now, user_id),
            )

    def list_all(self) -> List[User]:
        """List all users."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()

        return [self._row_to_user(row) for row in rows]

    def list_page(self, after_id: int, limit: int) -> List[User]:
        """List up to ``limit`` users with an ID greater than ``after_id``."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM users WHERE id > ? ORDER BY id LIMIT ?",
                (after_id, limit),
            ).fetchall()

        return [self._row_to_user(row) for row in rows]

    def _fetch_one(self, query: str, params: tuple) -> Optional[User]:
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(query, params).fetchone()

        if not row:
            return None

        return self._row_to_user(row)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User entity."""
        return User(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email_verified=bool(row["email_verified"]),
            stripe_customer_id=row["stripe_customer_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
