"""SQLite store for subscriptions."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .constants import STATUS_ACTIVE, STORE_DB_PATH
from .errors import DuplicateSubscriptionError, StoreError
from .models import Subscription, utcnow

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS subscriptions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    provider TEXT NOT NULL,
    product TEXT,
    amount REAL,
    currency TEXT,
    start_date TEXT,
    next_billing TEXT,
    expiry_date TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    tag TEXT,
    raw_data_json TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, provider)
);
"""

_DATE_FIELDS = ("start_date", "next_billing", "expiry_date")
UPDATABLE_FIELDS = (
    "product",
    "amount",
    "currency",
    "start_date",
    "next_billing",
    "expiry_date",
    "status",
    "tag",
    "raw_data",
)


def _to_db(name: str, value):  # noqa: ANN001, ANN202
    if value is None:
        return None
    if name in _DATE_FIELDS:
        return value.isoformat()
    if name == "raw_data":
        return json.dumps(value)
    return value


def _parse_date(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _from_row(row: sqlite3.Row) -> Subscription:
    return Subscription(
        id=row["id"],
        user_id=row["user_id"],
        provider=row["provider"],
        product=row["product"],
        amount=row["amount"],
        currency=row["currency"],
        start_date=_parse_date(row["start_date"]),
        next_billing=_parse_date(row["next_billing"]),
        expiry_date=_parse_date(row["expiry_date"]),
        status=row["status"],
        tag=row["tag"],
        raw_data=json.loads(row["raw_data_json"]) if row["raw_data_json"] else None,
        created_at=_parse_date(row["created_at"]),
        updated_at=_parse_date(row["updated_at"]),
    )


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreError(f"{action} failed: {exc}") from exc


class SubscriptionStore:
    """Persistent SQLite store, one row per (user, provider)."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = Path(db_path or STORE_DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with _store_errors(f"opening {self.db_path}"):
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript(_CREATE_TABLES_SQL)

    # --- public API ---

    def get(self, subscription_id: int) -> Subscription | None:
        with _store_errors("get"):
            row = self._conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)
            ).fetchone()
        return _from_row(row) if row else None

    def find_existing(self, user_id: str, provider: str) -> Subscription | None:
        """Return the user's subscription for a provider, if any."""
        with _store_errors("find_existing"):
            row = self._conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? AND provider = ?",
                (user_id, provider),
            ).fetchone()
        return _from_row(row) if row else None

    def create(self, subscription: Subscription) -> Subscription:
        """Insert a new subscription.

        Raises DuplicateSubscriptionError when the (user, provider) pair is
        already stored.
        """
        now = utcnow().isoformat()
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO subscriptions (user_id, provider, product, amount, currency, "
                    "start_date, next_billing, expiry_date, status, tag, raw_data_json, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        subscription.user_id,
                        subscription.provider,
                        subscription.product,
                        subscription.amount,
                        subscription.currency,
                        _to_db("start_date", subscription.start_date),
                        _to_db("next_billing", subscription.next_billing),
                        _to_db("expiry_date", subscription.expiry_date),
                        subscription.status or STATUS_ACTIVE,
                        subscription.tag,
                        _to_db("raw_data", subscription.raw_data),
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateSubscriptionError(
                f"Subscription for {subscription.provider!r} already exists "
                f"for user {subscription.user_id!r}"
            ) from exc
        except sqlite3.Error as exc:
            raise StoreError(f"create failed: {exc}") from exc

        return self.get(cursor.lastrowid)

    def update(self, subscription_id: int, fields: dict) -> Subscription:
        """Overwrite the given fields of a stored subscription."""
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        columns = ["raw_data_json" if name == "raw_data" else name for name in fields]
        assignments = ", ".join(f"{col} = ?" for col in columns + ["updated_at"])
        values = [_to_db(name, value) for name, value in fields.items()]
        values += [utcnow().isoformat(), subscription_id]

        with _store_errors("update"), self._conn:
            cursor = self._conn.execute(
                f"UPDATE subscriptions SET {assignments} WHERE id = ?",  # noqa: S608
                values,
            )
        if cursor.rowcount == 0:
            raise StoreError(f"Subscription {subscription_id} not found")
        return self.get(subscription_id)

    def set_status(self, subscription_id: int, status: str) -> Subscription:
        return self.update(subscription_id, {"status": status})

    def list_for_user(self, user_id: str, status: str | None = None) -> list[Subscription]:
        query = "SELECT * FROM subscriptions WHERE user_id = ?"
        params: list = [user_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status)
        with _store_errors("list_for_user"):
            rows = self._conn.execute(query + " ORDER BY provider", params).fetchall()
        return [_from_row(r) for r in rows]

    def list_active(self) -> list[Subscription]:
        """All active subscriptions across users."""
        with _store_errors("list_active"):
            rows = self._conn.execute(
                "SELECT * FROM subscriptions WHERE status = ? ORDER BY user_id, provider",
                (STATUS_ACTIVE,),
            ).fetchall()
        return [_from_row(r) for r in rows]

    def delete(self, subscription_id: int) -> None:
        """Remove a stored subscription."""
        with _store_errors("delete"), self._conn:
            cursor = self._conn.execute(
                "DELETE FROM subscriptions WHERE id = ?", (subscription_id,)
            )
        if cursor.rowcount == 0:
            raise StoreError(f"Subscription {subscription_id} not found")

    def clear(self) -> None:
        """Drop and recreate all tables."""
        with _store_errors("clear"):
            self._conn.executescript("DROP TABLE IF EXISTS subscriptions;")
            self._create_tables()

    def get_info(self) -> dict:
        """Return store statistics."""
        file_size = self.db_path.stat().st_size if self.db_path.exists() else 0

        with _store_errors("get_info"):
            counts = {
                row["status"]: row["c"]
                for row in self._conn.execute(
                    "SELECT status, COUNT(*) AS c FROM subscriptions GROUP BY status"
                ).fetchall()
            }
            user_count = self._conn.execute(
                "SELECT COUNT(DISTINCT user_id) AS c FROM subscriptions"
            ).fetchone()["c"]
            last_update = self._conn.execute(
                "SELECT MAX(updated_at) AS last FROM subscriptions"
            ).fetchone()["last"]

        return {
            "db_file_size": file_size,
            "user_count": user_count,
            "subscription_count": sum(counts.values()),
            "active_count": counts.get("active", 0),
            "expired_count": counts.get("expired", 0),
            "last_update": last_update,
        }

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # --- context manager ---

    def __enter__(self) -> SubscriptionStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()
