from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from .normalize import ZERO, quantize_money


@dataclass(frozen=True)
class Product:
    """Catalog entry. Prices are cent-quantized Decimals."""

    id: str
    name: str
    category: str
    price: Decimal
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def label(self, currency_symbol: str = "") -> str:
        return f"{self.name} ({currency_symbol}{self.price:.2f})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": str(self.price),
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class BillLine:
    """One row of an in-progress bill, keyed by product id."""

    product: Product
    quantity: int = 1
    override_price: Optional[Decimal] = None

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def unit_price(self) -> Decimal:
        return self.override_price if self.override_price is not None else self.product.price

    @property
    def line_total(self) -> Decimal:
        return quantize_money(self.unit_price * self.quantity)

    def copy(self) -> "BillLine":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product.id,
            "name": self.product.name,
            "category": self.product.category,
            "description": self.product.description,
            "base_price": str(self.product.price),
            "override_price": str(self.override_price) if self.override_price is not None else None,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True)
class SnapshotLine:
    product_id: str
    name: str
    category: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True)
class BillSnapshot:
    """Finalized, immutable view of a bill handed to the exporters."""

    client_name: str
    lines: Tuple[SnapshotLine, ...]
    total_amount: Decimal = ZERO
    generated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "client_name": self.client_name,
            "lines": [line.to_dict() for line in self.lines],
            "total_amount": str(self.total_amount),
            "generated_at": self.generated_at.isoformat(timespec="seconds"),
        }
