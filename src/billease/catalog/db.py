from __future__ import annotations

import os
import sqlite3
import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from ..config import default_db_path
from ..domain.models import Product
from ..domain.normalize import from_cents, to_cents
from ..logging import get_logger
from ..paths import find_project_root


LOG = get_logger("catalog-db")


SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS products (
  product_id   TEXT PRIMARY KEY,
  name         TEXT NOT NULL CHECK(length(trim(name)) > 0),
  category     TEXT NOT NULL CHECK(length(trim(category)) > 0),
  price_cents  INTEGER NOT NULL CHECK(price_cents > 0),   -- base/list price
  description  TEXT,
  created_at   TEXT DEFAULT (datetime('now')),
  updated_at   TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);
CREATE INDEX IF NOT EXISTS idx_products_name     ON products(name);
"""

_PRODUCT_COLUMNS = "product_id, name, category, price_cents, description, created_at, updated_at"


class CatalogDatabase:
    """SQLite-backed product catalog.

    - Places the DB under `<project-root>/var/billease/catalog.sqlite3`
      unless an explicit path is given.
    - Ensures schema on first use.
    - Provides a context-managed connection method.
    """

    def __init__(self, db_path: Optional[str] = None, *, root_dir: Optional[str] = None) -> None:
        if db_path is None:
            db_path = default_db_path(find_project_root(root_dir))
        folder = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(folder, exist_ok=True)
        self.db_path = os.path.abspath(db_path)
        LOG.info(f"Catalog DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                # Non-fatal; continue with schema creation
                pass
            LOG.debug("Ensuring catalog schema is present")
            cur.executescript(SCHEMA_SQL)
            conn.commit()

    # --------------- Row helpers ---------------
    @staticmethod
    def _row_to_product(row: sqlite3.Row) -> Product:
        return Product(
            id=row["product_id"],
            name=row["name"],
            category=row["category"],
            price=from_cents(row["price_cents"]),
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # --------------- Writes ---------------
    def insert_product(
        self,
        *,
        name: str,
        category: str,
        price: Decimal,
        description: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> Product:
        pid = product_id or uuid.uuid4().hex
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO products (product_id, name, category, price_cents, description)
                VALUES (?, ?, ?, ?, ?)
                RETURNING {_PRODUCT_COLUMNS};
                """,
                (pid, name, category, to_cents(price), description),
            )
            row = cur.fetchone()
            conn.commit()
        LOG.info("Inserted product %s (%s)", pid, name)
        return self._row_to_product(row)

    def update_product(
        self,
        product_id: str,
        *,
        name: str,
        category: str,
        price: Decimal,
        description: Optional[str] = None,
    ) -> Optional[Product]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                UPDATE products
                SET name = ?, category = ?, price_cents = ?, description = ?, updated_at = datetime('now')
                WHERE product_id = ?
                RETURNING {_PRODUCT_COLUMNS};
                """,
                (name, category, to_cents(price), description, product_id),
            )
            row = cur.fetchone()
            conn.commit()
        if row is None:
            return None
        LOG.info("Updated product %s", product_id)
        return self._row_to_product(row)

    def delete_product(self, product_id: str) -> bool:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM products WHERE product_id = ?;", (product_id,))
            deleted = cur.rowcount > 0
            conn.commit()
        if deleted:
            LOG.info("Deleted product %s", product_id)
        return deleted

    # --------------- Queries ---------------
    def fetch_products(self, *, search: Optional[str] = None, category: Optional[str] = None) -> List[Product]:
        """Return products ordered by category then name."""
        where_clauses: List[str] = []
        params: List[Any] = []
        if category:
            where_clauses.append("category = ?")
            params.append(category)
        if search:
            like = f"%{search.lower()}%"
            where_clauses.append("(LOWER(name) LIKE ? OR LOWER(category) LIKE ? OR LOWER(COALESCE(description,'')) LIKE ?)")
            params.extend([like, like, like])
        where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products {where_sql} ORDER BY category ASC, name ASC, created_at ASC;",
                params,
            )
            return [self._row_to_product(row) for row in cur.fetchall()]

    def fetch_product(self, product_id: str) -> Optional[Product]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE product_id = ?;", (product_id,))
            row = cur.fetchone()
        return self._row_to_product(row) if row is not None else None

    def fetch_categories(self) -> List[str]:
        """Distinct, case-sensitive category names in ascending order."""
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT DISTINCT category FROM products ORDER BY category ASC;")
            return [row["category"] for row in cur.fetchall() if row["category"]]

    def fetch_summary(self) -> Dict[str, Any]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) AS products, COUNT(DISTINCT category) AS categories FROM products;")
            row = cur.fetchone()
        return {"products": int(row["products"]), "categories": int(row["categories"])}
