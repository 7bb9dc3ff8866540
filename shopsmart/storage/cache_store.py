# shopsmart/storage/cache_store.py

"""SQLite-backed product cache keyed by (marketplace, product_id)."""

import json
import logging
import re
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from shopsmart.config.settings import Settings
from shopsmart.models.product import CachedProduct, ScrapedProduct
from shopsmart.services.normalizer import ProductNormalizer

logger = logging.getLogger("shopsmart.cache")

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    marketplace    TEXT    NOT NULL,
    product_id     TEXT    NOT NULL,
    name           TEXT    NOT NULL,
    description    TEXT    NOT NULL DEFAULT '',
    price          REAL    NOT NULL DEFAULT 0,
    currency       TEXT    NOT NULL DEFAULT '',
    product_url    TEXT    NOT NULL DEFAULT '',
    images         TEXT    NOT NULL DEFAULT '[]',
    rating         REAL,
    num_reviews    INTEGER NOT NULL DEFAULT 0,
    availability   TEXT    NOT NULL DEFAULT 'Unknown',
    category       TEXT    NOT NULL DEFAULT 'Other',
    scraped_at     TEXT    NOT NULL,
    last_synced_at TEXT    NOT NULL,
    raw            TEXT    NOT NULL DEFAULT '{}',
    UNIQUE (marketplace, product_id)
);

CREATE INDEX IF NOT EXISTS idx_products_marketplace_scraped
    ON products(marketplace, scraped_at);
"""

# External-content FTS5 index over name/description, kept in sync by
# triggers.  The upsert's DO UPDATE branch fires the update trigger.
_FTS_SCHEMA = """\
CREATE VIRTUAL TABLE IF NOT EXISTS products_fts USING fts5(
    name, description,
    content='products', content_rowid='id',
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS products_ai AFTER INSERT ON products BEGIN
    INSERT INTO products_fts(rowid, name, description)
    VALUES (new.id, new.name, new.description);
END;

CREATE TRIGGER IF NOT EXISTS products_ad AFTER DELETE ON products BEGIN
    INSERT INTO products_fts(products_fts, rowid, name, description)
    VALUES ('delete', old.id, old.name, old.description);
END;

CREATE TRIGGER IF NOT EXISTS products_au AFTER UPDATE ON products BEGIN
    INSERT INTO products_fts(products_fts, rowid, name, description)
    VALUES ('delete', old.id, old.name, old.description);
    INSERT INTO products_fts(rowid, name, description)
    VALUES (new.id, new.name, new.description);
END;
"""

_UPSERT = """\
INSERT INTO products (
    marketplace, product_id, name, description, price, currency,
    product_url, images, rating, num_reviews, availability, category,
    scraped_at, last_synced_at, raw
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(marketplace, product_id) DO UPDATE SET
    name=excluded.name,
    description=excluded.description,
    price=excluded.price,
    currency=excluded.currency,
    product_url=excluded.product_url,
    images=excluded.images,
    rating=excluded.rating,
    num_reviews=excluded.num_reviews,
    availability=excluded.availability,
    category=excluded.category,
    scraped_at=excluded.scraped_at,
    last_synced_at=excluded.last_synced_at,
    raw=excluded.raw
"""


@dataclass
class CacheWriteResult:
    """Outcome of a best-effort cache write.

    A failed write is reported here instead of being raised.
    """

    written: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when nothing was lost."""
        return self.error is None


def _ts(value: datetime) -> str:
    # Fixed width keeps lexical order equal to chronological order
    return value.isoformat(timespec="microseconds")


class CacheStore:
    """Durable, idempotent store of scraped products.

    At most one row exists per ``(marketplace, product_id)``; every
    write is an upsert.  Rows are never deleted here.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.CACHE_DB_PATH
        target = str(path)
        if target != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(target, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self.full_text = self._init_full_text()
        logger.debug(
            "CacheStore opened at %s (fts=%s)", target, self.full_text,
        )

    def _init_full_text(self) -> bool:
        """Create the FTS5 index; report False when SQLite lacks FTS5."""
        try:
            self._conn.executescript(_FTS_SCHEMA)
        except sqlite3.OperationalError as exc:
            logger.warning(
                "FTS5 unavailable (%s), text search uses LIKE", exc,
            )
            return False
        return True

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # ── Writes ───────────────────────────────────────────

    def upsert(
        self,
        products: list[ScrapedProduct],
        now: datetime | None = None,
    ) -> CacheWriteResult:
        """Find-or-create each product by key and refresh its fields.

        Stamps ``scraped_at`` and ``last_synced_at`` with ``now``.
        Never raises: a persistence failure is logged and returned.
        """
        if not products:
            return CacheWriteResult()

        stamp = now or datetime.now()
        try:
            rows = [
                self._to_row(ProductNormalizer.to_cached(p, stamp))
                for p in products
            ]
            with self._lock, self._conn:
                self._conn.executemany(_UPSERT, rows)
        except Exception as exc:
            logger.error(
                "Cache write of %d products failed: %s",
                len(products),
                exc,
                exc_info=True,
            )
            return CacheWriteResult(
                written=0, failed=len(products), error=str(exc),
            )

        logger.info("Cached %d products", len(rows))
        return CacheWriteResult(written=len(rows))

    def touch(
        self,
        marketplace: str,
        product_id: str,
        now: datetime | None = None,
    ) -> CachedProduct | None:
        """Stamp ``scraped_at``/``last_synced_at`` on an existing row."""
        stamp = _ts(now or datetime.now())
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE products SET scraped_at = ?, last_synced_at = ? "
                "WHERE marketplace = ? AND product_id = ?",
                (stamp, stamp, marketplace.lower(), product_id),
            )
        if cur.rowcount == 0:
            return None
        return self.find_by_key(marketplace, product_id)

    # ── Reads ────────────────────────────────────────────

    def find_by_key(
        self, marketplace: str, product_id: str,
    ) -> CachedProduct | None:
        """Return the row for ``(marketplace, product_id)`` if any."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM products "
                "WHERE marketplace = ? AND product_id = ?",
                (marketplace.lower(), product_id),
            ).fetchone()
        return self._from_row(row) if row else None

    def query_by_text(
        self,
        query: str,
        marketplace: str,
        limit: int = Settings.DEFAULT_LIMIT,
    ) -> list[CachedProduct]:
        """Full-text search over name/description in one marketplace.

        Any query term may match.  Newest ``scraped_at`` first, at most
        ``limit`` rows.
        """
        tokens = _TOKEN_RE.findall(query.lower()) if query else []
        if not tokens or limit <= 0:
            return []

        if self.full_text:
            match = " OR ".join(f'"{t}"' for t in tokens)
            sql = (
                "SELECT * FROM products "
                "WHERE marketplace = ? AND id IN ("
                "  SELECT rowid FROM products_fts "
                "  WHERE products_fts MATCH ?"
                ") ORDER BY scraped_at DESC LIMIT ?"
            )
            params: tuple[Any, ...] = (marketplace.lower(), match, limit)
        else:
            clauses = " OR ".join(
                "name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\'"
                for _ in tokens
            )
            patterns: list[str] = []
            for t in tokens:
                escaped = (
                    t.replace("\\", "\\\\")
                    .replace("%", "\\%")
                    .replace("_", "\\_")
                )
                patterns.extend([f"%{escaped}%", f"%{escaped}%"])
            sql = (
                "SELECT * FROM products "
                f"WHERE marketplace = ? AND ({clauses}) "
                "ORDER BY scraped_at DESC LIMIT ?"
            )
            params = (marketplace.lower(), *patterns, limit)

        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [self._from_row(r) for r in rows]

    def count(self, marketplace: str | None = None) -> int:
        """Number of cached rows, optionally for one marketplace."""
        with self._lock:
            if marketplace is None:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM products"
                ).fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM products WHERE marketplace = ?",
                    (marketplace.lower(),),
                ).fetchone()
        return int(row[0])

    @staticmethod
    def is_fresh(
        product: CachedProduct | None,
        ttl_ms: int = Settings.PRODUCT_TTL_MS,
        now: datetime | None = None,
    ) -> bool:
        """True when ``product`` was scraped less than ``ttl_ms`` ago."""
        if product is None:
            return False
        current = now or datetime.now()
        age_ms = (current - product.scraped_at).total_seconds() * 1000
        return age_ms < ttl_ms

    # ── Row mapping ──────────────────────────────────────

    @staticmethod
    def _to_row(p: CachedProduct) -> tuple[Any, ...]:
        return (
            p.marketplace,
            p.product_id,
            p.name,
            p.description,
            p.price,
            p.currency,
            p.product_url,
            json.dumps(p.images, ensure_ascii=False),
            p.rating,
            p.num_reviews,
            p.availability,
            p.category,
            _ts(p.scraped_at),
            _ts(p.last_synced_at),
            json.dumps(p.raw, ensure_ascii=False, default=str),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> CachedProduct:
        return CachedProduct(
            marketplace=row["marketplace"],
            product_id=row["product_id"],
            name=row["name"],
            description=row["description"],
            price=row["price"],
            currency=row["currency"],
            product_url=row["product_url"],
            images=json.loads(row["images"] or "[]"),
            rating=row["rating"],
            num_reviews=row["num_reviews"],
            availability=row["availability"],
            category=row["category"],
            scraped_at=datetime.fromisoformat(row["scraped_at"]),
            last_synced_at=datetime.fromisoformat(row["last_synced_at"]),
            raw=json.loads(row["raw"] or "{}"),
        )
