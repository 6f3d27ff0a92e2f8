"""SQLite metadata store for page records.

One table, keyed by (graph_id, name). Summaries are stored as JSON arrays.
"""

import json
import sqlite3
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from graphsieve.models.page_record import PageRecord

logger = structlog.get_logger()

# Increment when the table layout changes; older stores are rebuilt
STORE_SCHEMA_VERSION = 1

_COLUMNS = ("graph_id", "name", "uuid", "last_modified", "summary", "image", "archived", "favorite", "journal")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS pages (
    graph_id TEXT NOT NULL,
    name TEXT NOT NULL,
    uuid TEXT NOT NULL DEFAULT '',
    last_modified REAL NOT NULL DEFAULT 0,
    summary TEXT NOT NULL DEFAULT '[]',
    image TEXT NOT NULL DEFAULT '',
    archived INTEGER NOT NULL DEFAULT 0,
    favorite INTEGER NOT NULL DEFAULT 0,
    journal INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (graph_id, name)
);
CREATE INDEX IF NOT EXISTS idx_pages_graph ON pages (graph_id);
CREATE INDEX IF NOT EXISTS idx_pages_modified ON pages (graph_id, last_modified);
CREATE INDEX IF NOT EXISTS idx_pages_archived ON pages (graph_id, archived);
CREATE INDEX IF NOT EXISTS idx_pages_favorite ON pages (graph_id, favorite);
CREATE INDEX IF NOT EXISTS idx_pages_uuid ON pages (graph_id, uuid);
"""

_FLAGS = ("archived", "favorite", "journal")


class PageStore:
    """Persistent key/value store of PageRecords.

    Example:
        >>> store = PageStore(":memory:")
        >>> store.upsert(PageRecord(graph_id="fs_notes", name="Ideas", summary=["first line"]))
        >>> store.get("fs_notes", "Ideas").summary
        ['first line']
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """
        Open (and create if needed) the store.

        Args:
            db_path: SQLite file path, or ':memory:' for a throwaway store
        """
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()
        logger.debug("page_store_opened", db_path=self.db_path)

    def _ensure_schema(self) -> None:
        version = self._conn.execute("PRAGMA user_version").fetchone()[0]
        if version not in (0, STORE_SCHEMA_VERSION):
            logger.warning(
                "store_schema_mismatch",
                stored_version=version,
                current_version=STORE_SCHEMA_VERSION,
                action="rebuild",
            )
            self._conn.execute("DROP TABLE IF EXISTS pages")
        with self._conn:
            self._conn.executescript(_SCHEMA)
            self._conn.execute(f"PRAGMA user_version = {STORE_SCHEMA_VERSION}")

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "PageStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def _to_row(record: PageRecord) -> tuple:
        return (
            record.graph_id,
            record.name,
            record.uuid,
            float(record.last_modified),
            json.dumps(record.summary, ensure_ascii=False),
            record.image,
            int(record.archived),
            int(record.favorite),
            int(record.journal),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> PageRecord:
        try:
            summary = json.loads(row["summary"])
        except (TypeError, ValueError):
            summary = []
        return PageRecord(
            graph_id=row["graph_id"],
            name=row["name"],
            uuid=row["uuid"],
            last_modified=row["last_modified"],
            summary=[str(line) for line in summary] if isinstance(summary, list) else [],
            image=row["image"],
            archived=bool(row["archived"]),
            favorite=bool(row["favorite"]),
            journal=bool(row["journal"]),
        )

    def _query(self, sql: str, params: tuple = ()) -> list[PageRecord]:
        return [self._from_row(row) for row in self._conn.execute(sql, params)]

    def upsert(self, record: PageRecord) -> None:
        """Insert or overwrite a record.

        When the record carries a uuid, other names in the same graph with
        that uuid are removed so the uuid stays unique per graph.
        """
        placeholders = ", ".join("?" for _ in _COLUMNS)
        updates = ", ".join(f"{col} = excluded.{col}" for col in _COLUMNS[2:])
        with self._conn:
            if record.uuid:
                cur = self._conn.execute(
                    "DELETE FROM pages WHERE graph_id = ? AND uuid = ? AND name != ?",
                    (record.graph_id, record.uuid, record.name),
                )
                if cur.rowcount:
                    logger.debug(
                        "page_uuid_dedup",
                        graph_id=record.graph_id,
                        name=record.name,
                        uuid=record.uuid,
                        removed=cur.rowcount,
                    )
            self._conn.execute(
                f"INSERT INTO pages ({', '.join(_COLUMNS)}) VALUES ({placeholders}) "
                f"ON CONFLICT(graph_id, name) DO UPDATE SET {updates}",
                self._to_row(record),
            )

    def get(self, graph_id: str, name: str) -> Optional[PageRecord]:
        rows = self._query("SELECT * FROM pages WHERE graph_id = ? AND name = ?", (graph_id, name))
        return rows[0] if rows else None

    def update(self, graph_id: str, name: str, **changes: Any) -> Optional[PageRecord]:
        """Apply field changes to an existing record.

        Returns:
            The updated record, or None if it does not exist
        """
        current = self.get(graph_id, name)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        if (updated.graph_id, updated.name) != (graph_id, name):
            self.delete(graph_id, name)
        self.upsert(updated)
        return updated

    def delete(self, graph_id: str, name: str) -> bool:
        with self._conn:
            cur = self._conn.execute("DELETE FROM pages WHERE graph_id = ? AND name = ?", (graph_id, name))
        return cur.rowcount > 0

    def delete_graph(self, graph_id: str) -> int:
        """Remove every record of a graph; returns the number removed."""
        with self._conn:
            cur = self._conn.execute("DELETE FROM pages WHERE graph_id = ?", (graph_id,))
        logger.info("graph_records_deleted", graph_id=graph_id, count=cur.rowcount)
        return cur.rowcount

    def all_by_graph(self, graph_id: str) -> list[PageRecord]:
        return self._query("SELECT * FROM pages WHERE graph_id = ? ORDER BY name", (graph_id,))

    def recent(self, graph_id: str, limit: int = 50, include_archived: bool = False) -> list[PageRecord]:
        """Most recently modified records first."""
        sql = "SELECT * FROM pages WHERE graph_id = ?"
        if not include_archived:
            sql += " AND archived = 0"
        sql += " ORDER BY last_modified DESC, name LIMIT ?"
        return self._query(sql, (graph_id, limit))

    def favorites(self, graph_id: str) -> list[PageRecord]:
        return self._query(
            "SELECT * FROM pages WHERE graph_id = ? AND favorite = 1 ORDER BY last_modified DESC",
            (graph_id,),
        )

    def archived(self, graph_id: str) -> list[PageRecord]:
        return self._query(
            "SELECT * FROM pages WHERE graph_id = ? AND archived = 1 ORDER BY last_modified DESC",
            (graph_id,),
        )

    def find_by_uuid(self, graph_id: str, uuid: str) -> Optional[PageRecord]:
        if not uuid:
            return None
        rows = self._query(
            "SELECT * FROM pages WHERE graph_id = ? AND uuid = ? ORDER BY last_modified DESC",
            (graph_id, uuid),
        )
        return rows[0] if rows else None

    def names_with_prefix(self, graph_id: str, prefix: str) -> list[str]:
        """Page names starting with prefix (e.g. 'Projects/' for sub-pages)."""
        rows = self._conn.execute(
            "SELECT name FROM pages WHERE graph_id = ? AND substr(name, 1, ?) = ? ORDER BY name",
            (graph_id, len(prefix), prefix),
        )
        return [row["name"] for row in rows]

    def count(self, graph_id: str) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM pages WHERE graph_id = ?", (graph_id,)).fetchone()[0]

    def set_flag(self, graph_id: str, name: str, flag: str, value: bool) -> bool:
        """Set archived/favorite/journal on a record.

        Raises:
            ValueError: For an unknown flag name
        """
        if flag not in _FLAGS:
            raise ValueError(f"Unknown flag: {flag}")
        with self._conn:
            cur = self._conn.execute(
                f"UPDATE pages SET {flag} = ? WHERE graph_id = ? AND name = ?",
                (int(value), graph_id, name),
            )
        return cur.rowcount > 0
