"""SQLite storage for items."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import Item

_COLUMNS = "id, name, description, metadata, created_by, created_at, updated_at"


class IStorage(Protocol):
    """Persistent item storage (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def create_item(
        self,
        name: str,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        created_by: str | None = None,
    ) -> Item:
        """Insert a new item."""
        ...

    async def get_item(self, item_id: int) -> Item | None:
        """Get an item by ID."""
        ...

    async def get_item_by_name(self, name: str) -> Item | None:
        """Get an item by its unique name."""
        ...

    async def list_items(self) -> list[Item]:
        """All items, oldest first."""
        ...

    async def search_items(self, query: str) -> list[Item]:
        """Items whose name or description contains the query."""
        ...

    async def update_item(self, item_id: int, **fields: Any) -> Item | None:
        """Update the given fields of an item."""
        ...

    async def delete_item(self, item_id: int) -> bool:
        """Delete an item. Returns False if it did not exist."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


def _row_to_item(row: tuple) -> Item:
    return Item(
        id=row[0],
        name=row[1],
        description=row[2],
        metadata=json.loads(row[3]) if row[3] else {},
        created_by=row[4],
        created_at=datetime.fromisoformat(row[5]),
        updated_at=datetime.fromisoformat(row[6]),
    )


class Storage:
    """SQLite storage implementation."""

    UPDATABLE_FIELDS = ("name", "description", "metadata")

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def create_item(
        self,
        name: str,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        created_by: str | None = None,
    ) -> Item:
        """Insert a new item. Raises sqlite3.IntegrityError on a duplicate name."""
        conn = self._require_conn()
        now = datetime.now(timezone.utc).isoformat()

        cursor = await conn.execute(
            """
            INSERT INTO items (name, description, metadata, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (name, description, json.dumps(metadata or {}), created_by, now, now),
        )
        await conn.commit()

        item = await self.get_item(cursor.lastrowid)
        if item is None:
            raise RuntimeError("Inserted item could not be read back")
        return item

    async def get_item(self, item_id: int) -> Item | None:
        """Get an item by ID."""
        conn = self._require_conn()
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM items WHERE id = ?", (item_id,)
        )
        row = await cursor.fetchone()
        return _row_to_item(row) if row else None

    async def get_item_by_name(self, name: str) -> Item | None:
        """Get an item by its unique name."""
        conn = self._require_conn()
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM items WHERE name = ?", (name,)
        )
        row = await cursor.fetchone()
        return _row_to_item(row) if row else None

    async def list_items(self) -> list[Item]:
        """All items, oldest first."""
        conn = self._require_conn()
        cursor = await conn.execute(f"SELECT {_COLUMNS} FROM items ORDER BY id ASC")
        return [_row_to_item(row) for row in await cursor.fetchall()]

    async def search_items(self, query: str) -> list[Item]:
        """Items whose name or description contains the query."""
        conn = self._require_conn()
        pattern = f"%{query}%"
        cursor = await conn.execute(
            f"""
            SELECT {_COLUMNS} FROM items
            WHERE name LIKE ? OR description LIKE ?
            ORDER BY id ASC
            """,
            (pattern, pattern),
        )
        return [_row_to_item(row) for row in await cursor.fetchall()]

    async def update_item(self, item_id: int, **fields: Any) -> Item | None:
        """Update the given fields of an item. Unknown fields raise ValueError."""
        conn = self._require_conn()

        unknown = set(fields) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        if fields:
            if "metadata" in fields:
                fields["metadata"] = json.dumps(fields["metadata"] or {})
            assignments = ", ".join(f"{name} = ?" for name in fields)
            values = list(fields.values())
            values.append(datetime.now(timezone.utc).isoformat())
            values.append(item_id)
            await conn.execute(
                f"UPDATE items SET {assignments}, updated_at = ? WHERE id = ?",
                values,
            )
            await conn.commit()

        return await self.get_item(item_id)

    async def delete_item(self, item_id: int) -> bool:
        """Delete an item. Returns False if it did not exist."""
        conn = self._require_conn()
        cursor = await conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
        await conn.commit()
        return cursor.rowcount > 0

    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()
        await conn.execute("DELETE FROM items")
        await conn.commit()
