from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from ..domain.models import BillLine, BillSnapshot
from ..domain.normalize import ZERO, clean_text, parse_money
from ..logging import get_logger
from .engine import MAX_QUANTITY, BillAssembly
from .errors import BillingError, CommandValidationError
from .selector import resolve_category


LOG = get_logger("bill-commands")

MIN_PRODUCT_NAME_LENGTH = 2


# ---------- command objects ----------
@dataclass(frozen=True)
class AddProduct:
    product_id: str


@dataclass(frozen=True)
class SetQuantity:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class SetUnitPrice:
    product_id: str
    price: Decimal


@dataclass(frozen=True)
class RemoveLine:
    product_id: str


@dataclass(frozen=True)
class GenerateBill:
    client_name: str


BillCommand = Union[AddProduct, SetQuantity, SetUnitPrice, RemoveLine, GenerateBill]


@dataclass(frozen=True)
class ProductDraft:
    """Validated catalog form payload."""

    name: str
    category: str
    price: Decimal
    description: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    error: Optional[str] = None
    message: Optional[str] = None
    line: Optional[BillLine] = None
    snapshot: Optional[BillSnapshot] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": self.ok}
        if self.error:
            out["error"] = self.error
            out["detail"] = self.message
        if self.line is not None:
            out["line"] = self.line.to_dict()
        if self.snapshot is not None:
            out["snapshot"] = self.snapshot.to_dict()
        return out


# ---------- validation ----------
def _require_id(value: Any, field: str = "product_id") -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    pid = clean_text(value)
    if not pid:
        raise CommandValidationError(f"{field} required")
    return pid


def _parse_quantity(value: Any) -> int:
    """Whole-number quantity; blank input counts as zero."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool):
        raise CommandValidationError("quantity must be a whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise CommandValidationError("quantity must be a whole number")
        quantity = int(value)
    else:
        try:
            quantity = int(str(value).strip())
        except ValueError:
            raise CommandValidationError(f"invalid quantity: {value!r}")
    if quantity > MAX_QUANTITY:
        raise CommandValidationError(f"quantity must be at most {MAX_QUANTITY}")
    return quantity


def _parse_price(value: Any, field: str = "price") -> Decimal:
    try:
        return parse_money(value)
    except (ValueError, ArithmeticError):
        raise CommandValidationError(f"invalid {field}: {value!r}")


def parse_add_product(payload: Any) -> AddProduct:
    if not isinstance(payload, dict):
        raise CommandValidationError("Payload must be a JSON object")
    return AddProduct(product_id=_require_id(payload.get("product_id")))


def parse_line_update(product_id: Any, payload: Any) -> List[BillCommand]:
    """Turn a line edit payload ({quantity?, unit_price?}) into commands.

    Quantity is applied before the price so a combined edit reads naturally.
    """
    if not isinstance(payload, dict):
        raise CommandValidationError("Payload must be a JSON object")
    pid = _require_id(product_id)
    commands: List[BillCommand] = []
    if "quantity" in payload:
        commands.append(SetQuantity(product_id=pid, quantity=_parse_quantity(payload.get("quantity"))))
    if "unit_price" in payload:
        commands.append(SetUnitPrice(product_id=pid, price=_parse_price(payload.get("unit_price"), "unit_price")))
    if not commands:
        raise CommandValidationError("quantity or unit_price required")
    return commands


def parse_generate_bill(payload: Any) -> GenerateBill:
    if not isinstance(payload, dict):
        raise CommandValidationError("Payload must be a JSON object")
    raw = payload.get("client_name")
    # Blank names are left for the engine to reject as MissingClientName.
    return GenerateBill(client_name=raw if isinstance(raw, str) else "")


def parse_product_payload(payload: Any, *, require_id: bool = False) -> ProductDraft:
    """Validate the catalog editor form.

    - name: at least two characters after trimming
    - category / new_category: resolved through the category picker rules
    - price: positive amount
    - description: optional free text
    """
    if not isinstance(payload, dict):
        raise CommandValidationError("Payload must be a JSON object")

    name = clean_text(payload.get("name"))
    if not name or len(name) < MIN_PRODUCT_NAME_LENGTH:
        raise CommandValidationError("Product name must be at least 2 characters.")

    category = resolve_category(payload.get("category"), payload.get("new_category"))

    if payload.get("price") is None:
        raise CommandValidationError("price required")
    price = _parse_price(payload.get("price"))
    if price <= ZERO:
        raise CommandValidationError("Price must be a positive number.")

    description = clean_text(payload.get("description"))
    pid = _require_id(payload.get("id"), "id") if require_id else None
    return ProductDraft(name=name, category=category, price=price, description=description, id=pid)


# ---------- session ----------
class BillSession:
    """Apply validated commands to one bill and report typed results."""

    def __init__(self, engine: BillAssembly, session_id: Optional[str] = None) -> None:
        self.engine = engine
        self.session_id = session_id

    def apply(self, command: BillCommand) -> OperationResult:
        try:
            if isinstance(command, AddProduct):
                return OperationResult(ok=True, line=self.engine.add_product(command.product_id))
            if isinstance(command, SetQuantity):
                return OperationResult(ok=True, line=self.engine.set_quantity(command.product_id, command.quantity))
            if isinstance(command, SetUnitPrice):
                return OperationResult(
                    ok=True, line=self.engine.set_unit_price_override(command.product_id, command.price)
                )
            if isinstance(command, RemoveLine):
                return OperationResult(ok=True, line=self.engine.remove_line(command.product_id))
            if isinstance(command, GenerateBill):
                return OperationResult(ok=True, snapshot=self.engine.build_snapshot(command.client_name))
        except BillingError as exc:
            LOG.info("Command %s rejected: %s", type(command).__name__, exc.message)
            return OperationResult(ok=False, error=exc.kind, message=exc.message)
        raise TypeError(f"Unsupported command: {command!r}")

    def apply_all(self, commands: List[BillCommand]) -> OperationResult:
        """Apply commands in order, stopping at the first failure."""
        result = OperationResult(ok=True)
        for command in commands:
            result = self.apply(command)
            if not result.ok:
                break
        return result

    def state(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "lines": [line.to_dict() for line in self.engine.lines],
            "total_amount": str(self.engine.compute_total()),
        }
