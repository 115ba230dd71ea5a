from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..billing.commands import parse_product_payload
from ..billing.errors import BillingError
from ..domain.models import Product
from ..logging import get_logger
from .db import CatalogDatabase


LOG = get_logger("catalog-service")


@dataclass(frozen=True)
class CatalogResult:
    success: bool
    error: Optional[str] = None
    product: Optional[Product] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.error:
            out["error"] = self.error
        if self.product is not None:
            out["product"] = self.product.to_dict()
        return out


class CatalogService:
    """Catalog provider and mutation boundary.

    Reads degrade to empty lists on failure; writes report a CatalogResult
    instead of raising so callers can show inline feedback.
    """

    def __init__(self, db: Optional[CatalogDatabase] = None) -> None:
        self.db = db or CatalogDatabase()

    # ---------- provider ----------
    def list_products(self, *, search: Optional[str] = None, category: Optional[str] = None) -> List[Product]:
        try:
            return self.db.fetch_products(search=search, category=category)
        except sqlite3.Error as e:
            LOG.error(f"Failed to fetch products: {e}")
            return []

    def list_categories(self) -> List[str]:
        try:
            return self.db.fetch_categories()
        except sqlite3.Error as e:
            LOG.error(f"Failed to fetch categories: {e}")
            return []

    def get_product(self, product_id: str) -> Optional[Product]:
        try:
            return self.db.fetch_product(product_id)
        except sqlite3.Error as e:
            LOG.error(f"Failed to fetch product {product_id}: {e}")
            return None

    # ---------- mutations ----------
    def create_product(self, data: Any) -> CatalogResult:
        try:
            draft = parse_product_payload(data)
            product = self.db.insert_product(
                name=draft.name,
                category=draft.category,
                price=draft.price,
                description=draft.description,
            )
        except BillingError as e:
            return CatalogResult(success=False, error=e.message)
        except sqlite3.Error as e:
            LOG.error(f"Failed to create product: {e}")
            return CatalogResult(success=False, error="Could not add product. Please try again.")
        return CatalogResult(success=True, product=product)

    def update_product(self, data: Any) -> CatalogResult:
        try:
            draft = parse_product_payload(data, require_id=True)
            product = self.db.update_product(
                draft.id,
                name=draft.name,
                category=draft.category,
                price=draft.price,
                description=draft.description,
            )
        except BillingError as e:
            return CatalogResult(success=False, error=e.message)
        except sqlite3.Error as e:
            LOG.error(f"Failed to update product: {e}")
            return CatalogResult(success=False, error="Could not update product. Please try again.")
        if product is None:
            return CatalogResult(success=False, error="Product not found.")
        return CatalogResult(success=True, product=product)

    def delete_product(self, product_id: Any) -> CatalogResult:
        pid = str(product_id).strip() if product_id is not None else ""
        if not pid:
            return CatalogResult(success=False, error="Product id required.")
        try:
            deleted = self.db.delete_product(pid)
        except sqlite3.Error as e:
            LOG.error(f"Failed to delete product {pid}: {e}")
            return CatalogResult(success=False, error="Could not delete product. Please try again.")
        if not deleted:
            return CatalogResult(success=False, error="Product not found.")
        return CatalogResult(success=True)
