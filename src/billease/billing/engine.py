from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from ..domain.models import BillLine, BillSnapshot, Product, SnapshotLine
from ..domain.normalize import ZERO, parse_money, quantize_money
from ..logging import get_logger
from .errors import CommandValidationError, EmptyBill, MissingClientName, UnknownLine, UnknownProduct


LOG = get_logger("bill-engine")

MAX_QUANTITY = 1_000_000


class BillAssembly:
    """Working set of lines for one in-progress bill.

    - Holds its own copy of the catalog taken at session start; later catalog
      edits do not reach an open bill.
    - Lines are kept in insertion order, which is also the export order.
    - Every operation either completes or raises without touching state.
    """

    def __init__(self, products: Iterable[Product]) -> None:
        self._catalog: Dict[str, Product] = {p.id: p for p in products}
        self._lines: Dict[str, BillLine] = {}
        LOG.debug("Bill session opened with %d catalog product(s)", len(self._catalog))

    @classmethod
    def from_provider(cls, provider) -> "BillAssembly":
        """Open a bill against ``provider.list_products()`` (read once)."""
        return cls(provider.list_products())

    # ---------- read ----------
    @property
    def catalog(self) -> List[Product]:
        return list(self._catalog.values())

    @property
    def lines(self) -> List[BillLine]:
        return [line.copy() for line in self._lines.values()]

    def get_line(self, product_id: str) -> BillLine:
        return self._require_line(product_id).copy()

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._lines

    def __iter__(self) -> Iterator[BillLine]:
        return iter(self.lines)

    # ---------- mutate ----------
    def add_product(self, product_id: str) -> BillLine:
        product = self._catalog.get(product_id)
        if product is None:
            raise UnknownProduct(product_id)
        existing = self._lines.get(product_id)
        if existing is not None:
            return self.set_quantity(product_id, existing.quantity + 1)
        line = BillLine(product=product, quantity=1)
        self._lines[product_id] = line
        LOG.debug("Added %s (%s) to bill", product.name, product_id)
        return line.copy()

    def set_quantity(self, product_id: str, new_quantity: int) -> BillLine:
        line = self._require_line(product_id)
        quantity = max(0, int(new_quantity))
        if quantity > MAX_QUANTITY:
            raise CommandValidationError(f"quantity must be at most {MAX_QUANTITY}")
        line.quantity = quantity
        return line.copy()

    def set_unit_price_override(self, product_id: str, new_price) -> BillLine:
        line = self._require_line(product_id)
        try:
            price = parse_money(new_price)
        except ValueError as exc:
            raise CommandValidationError(f"invalid unit price: {new_price!r}") from exc
        if price < ZERO:
            price = ZERO
        if price == line.product.price:
            line.override_price = None
        else:
            line.override_price = price
        return line.copy()

    def remove_line(self, product_id: str) -> BillLine:
        """Drop the line whatever its quantity; absent lines raise UnknownLine."""
        line = self._require_line(product_id)
        del self._lines[product_id]
        LOG.debug("Removed %s from bill", product_id)
        return line

    def clear(self) -> None:
        self._lines.clear()

    # ---------- derive ----------
    def compute_total(self) -> Decimal:
        total = sum((line.line_total for line in self._lines.values() if line.quantity > 0), ZERO)
        return quantize_money(total)

    def build_snapshot(self, client_name: Optional[str], *, now: Optional[datetime] = None) -> BillSnapshot:
        name = (client_name or "").strip()
        if not name:
            raise MissingClientName()
        billable = [line for line in self._lines.values() if line.quantity > 0]
        if not billable:
            raise EmptyBill()
        snapshot_lines = tuple(
            SnapshotLine(
                product_id=line.product.id,
                name=line.product.name,
                category=line.product.category,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in billable
        )
        snapshot = BillSnapshot(
            client_name=name,
            lines=snapshot_lines,
            total_amount=quantize_money(sum((l.line_total for l in snapshot_lines), ZERO)),
            generated_at=now or datetime.now(),
        )
        LOG.info("Snapshot built for %r: %d line(s), total %s", name, len(snapshot_lines), snapshot.total_amount)
        return snapshot

    def _require_line(self, product_id: str) -> BillLine:
        line = self._lines.get(product_id)
        if line is None:
            raise UnknownLine(product_id)
        return line
