"""Repository for Subscription persistence."""

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from subdomain_billing.domain.models.plan import SubscriptionPlan, SubscriptionStatus
from subdomain_billing.domain.models.subscription import Subscription
from subdomain_billing.domain.ports.persistence import StoreError

# Columns accepted by ``update``; everything else is managed by the repository.
_UPDATABLE_COLUMNS = frozenset(
    {
        "plan",
        "status",
        "subdomain_quota",
        "subdomains_used",
        "stripe_price_id",
        "stripe_current_period_start",
        "stripe_current_period_end",
        "stripe_cancel_at_period_end",
        "stripe_cancel_at",
        "canceled_at",
        "ended_at",
    }
)

_DATETIME_COLUMNS = frozenset(
    {
        "stripe_current_period_start",
        "stripe_current_period_end",
        "stripe_cancel_at",
        "canceled_at",
        "ended_at",
    }
)


class SubscriptionRepository:
    """Repository for managing Subscription entities in SQLite."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        """Create subscriptions table if it doesn't exist."""
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    plan TEXT NOT NULL,
                    status TEXT NOT NULL,
                    subdomain_quota INTEGER NOT NULL,
                    subdomains_used INTEGER NOT NULL DEFAULT 0,
                    stripe_subscription_id TEXT UNIQUE,
                    stripe_price_id TEXT,
                    stripe_current_period_start TEXT,
                    stripe_current_period_end TEXT,
                    stripe_cancel_at_period_end INTEGER DEFAULT 0,
                    stripe_cancel_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    canceled_at TEXT,
                    ended_at TEXT,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_user_id ON subscriptions(user_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_stripe_subscription_id ON subscriptions(stripe_subscription_id)"
            )

    def create(
        self,
        user_id: int,
        plan: SubscriptionPlan,
        status: SubscriptionStatus,
        subdomain_quota: int,
        subdomains_used: int = 0,
        stripe_subscription_id: Optional[str] = None,
        stripe_price_id: Optional[str] = None,
        stripe_current_period_start: Optional[datetime] = None,
        stripe_current_period_end: Optional[datetime] = None,
        stripe_cancel_at_period_end: bool = False,
        stripe_cancel_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> Subscription:
        """
        Create a new subscription.

        Raises:
            StoreError: If the row cannot be inserted (e.g. duplicate Stripe ID)
        """
        created = _to_iso(created_at) or datetime.now(timezone.utc).isoformat()

        try:
            subscription_id = self._insert(
                (
                    user_id,
                    SubscriptionPlan(plan).value,
                    SubscriptionStatus(status).value,
                    subdomain_quota,
                    subdomains_used,
                    stripe_subscription_id,
                    stripe_price_id,
                    _to_iso(stripe_current_period_start),
                    _to_iso(stripe_current_period_end),
                    int(stripe_cancel_at_period_end),
                    _to_iso(stripe_cancel_at),
                    created,
                    created,
                )
            )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create subscription: {str(e)}") from e

        return Subscription(
            id=subscription_id,
            user_id=user_id,
            plan=plan,
            status=status,
            subdomain_quota=subdomain_quota,
            subdomains_used=subdomains_used,
            stripe_subscription_id=stripe_subscription_id,
            stripe_price_id=stripe_price_id,
            stripe_current_period_start=stripe_current_period_start,
            stripe_current_period_end=stripe_current_period_end,
            stripe_cancel_at_period_end=stripe_cancel_at_period_end,
            stripe_cancel_at=stripe_cancel_at,
            created_at=datetime.fromisoformat(created),
            updated_at=datetime.fromisoformat(created),
        )

    def _insert(self, values: tuple) -> int:
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            cursor = conn.execute(
                """
                INSERT INTO subscriptions (
                    user_id, plan, status, subdomain_quota, subdomains_used,
                    stripe_subscription_id, stripe_price_id,
                    stripe_current_period_start, stripe_current_period_end,
                    stripe_cancel_at_period_end, stripe_cancel_at,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
            return cursor.lastrowid

    def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        """Get subscription by ID."""
        return self._fetch_one(
            "SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)
        )

    def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        """Get subscription by Stripe subscription ID."""
        return self._fetch_one(
            "SELECT * FROM subscriptions WHERE stripe_subscription_id = ?",
            (stripe_subscription_id,),
        )

    def list_by_user_id(self, user_id: int) -> List[Subscription]:
        """List all subscriptions for a user, newest first."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                """
                SELECT * FROM subscriptions
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id,),
            ).fetchall()

        return [self._row_to_subscription(row) for row in rows]

    def count_by_user_id(self, user_id: int) -> int:
        """Count every subscription record a user owns."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM subscriptions WHERE user_id = ?", (user_id,)
            ).fetchone()
        return count

    def count_by_user_ids(self, user_ids: Iterable[int]) -> Dict[int, int]:
        """Count subscription records for several users in one query."""
        ids = list(user_ids)
        if not ids:
            return {}

        placeholders = ", ".join("?" for _ in ids)
        with closing(sqlite3.connect(self.db_path)) as conn:
            rows = conn.execute(
                f"""
                SELECT user_id, COUNT(*) FROM subscriptions
                WHERE user_id IN ({placeholders})
                GROUP BY user_id
                """,
                ids,
            ).fetchall()

        counts = {user_id: 0 for user_id in ids}
        counts.update({user_id: count for user_id, count in rows})
        return counts

    def update(self, subscription_id: int, **fields: Any) -> Optional[Subscription]:
        """
        Update a partial set of fields on a subscription.

        Args:
            subscription_id: Subscription ID
            **fields: Column values to set

        Returns:
            The updated Subscription, None if it does not exist

        Raises:
            ValueError: If a field is not updatable
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update subscription fields: {', '.join(sorted(unknown))}")

        if fields:
            assignments = [f"{column} = ?" for column in fields]
            values = [_to_column_value(column, value) for column, value in fields.items()]
            assignments.append("updated_at = ?")
            values.append(datetime.now(timezone.utc).isoformat())

            with closing(sqlite3.connect(self.db_path)) as conn, conn:
                conn.execute(
                    f"UPDATE subscriptions SET {', '.join(assignments)} WHERE id = ?",
                    (*values, subscription_id),
                )

        return self.get_by_id(subscription_id)

    def update_status_if(
        self,
        subscription_id: int,
        expected_status: SubscriptionStatus,
        status: SubscriptionStatus,
        stripe_cancel_at_period_end: Optional[bool] = None,
    ) -> bool:
        """
        Set a new status only while the row still holds ``expected_status``.

        The check and the write happen in a single UPDATE, so two concurrent
        callers cannot both apply the same transition.

        Returns:
            True if the row was updated, False if it was missing or had moved on
        """
        assignments = ["status = ?", "updated_at = ?"]
        values: List[Any] = [
            SubscriptionStatus(status).value,
            datetime.now(timezone.utc).isoformat(),
        ]
        if stripe_cancel_at_period_end is not None:
            assignments.append("stripe_cancel_at_period_end = ?")
            values.append(int(stripe_cancel_at_period_end))

        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            cursor = conn.execute(
                f"""
                UPDATE subscriptions
                SET {', '.join(assignments)}
                WHERE id = ? AND status = ?
                """,
                (*values, subscription_id, SubscriptionStatus(expected_status).value),
            )
            return cursor.rowcount == 1

    def _fetch_one(self, query: str, params: tuple) -> Optional[Subscription]:
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(query, params).fetchone()

        if not row:
            return None

        return self._row_to_subscription(row)

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        """Convert database row to Subscription entity."""
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            plan=SubscriptionPlan(row["plan"]),
            status=SubscriptionStatus(row["status"]),
            subdomain_quota=row["subdomain_quota"],
            subdomains_used=row["subdomains_used"],
            stripe_subscription_id=row["stripe_subscription_id"],
            stripe_price_id=row["stripe_price_id"],
            stripe_current_period_start=_from_iso(row["stripe_current_period_start"]),
            stripe_current_period_end=_from_iso(row["stripe_current_period_end"]),
            stripe_cancel_at_period_end=bool(row["stripe_cancel_at_period_end"]),
            stripe_cancel_at=_from_iso(row["stripe_cancel_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            canceled_at=_from_iso(row["canceled_at"]),
            ended_at=_from_iso(row["ended_at"]),
        )


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # Stored text is ordered lexically, so every timestamp is written in UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _to_column_value(column: str, value: Any) -> Any:
    if column in _DATETIME_COLUMNS:
        return _to_iso(value)
    if column == "plan":
        return SubscriptionPlan(value).value
    if column == "status":
        return SubscriptionStatus(value).value
    if column == "stripe_cancel_at_period_end":
        return int(bool(value))
    return value
