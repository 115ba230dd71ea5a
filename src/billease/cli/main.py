from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List, Sequence, Tuple

from ..billing.commands import AddProduct, BillCommand, BillSession, GenerateBill, SetQuantity, SetUnitPrice
from ..billing.engine import MAX_QUANTITY, BillAssembly
from ..billing.errors import CommandValidationError, ExportError
from ..catalog import CatalogDatabase, CatalogService
from ..config import Settings, load_settings
from ..domain.normalize import format_money, parse_money
from ..export import build_share_payload, default_pdf_name, render_html, write_pdf
from ..paths import expand_abs
from ..logging import get_logger

LOG = get_logger("cli-main")


def _service(ns: argparse.Namespace) -> Tuple[Settings, CatalogService]:
    settings = load_settings(ns.root)
    db_path = expand_abs(ns.db) if ns.db else settings.db_path
    return settings, CatalogService(CatalogDatabase(db_path))


def parse_item_spec(spec: str) -> Tuple[str, int, object]:
    """Split ``ID[:QTY[:PRICE]]`` into (id, quantity, price-or-None)."""
    parts = spec.split(":")
    if not parts[0].strip() or len(parts) > 3:
        raise CommandValidationError(f"invalid item spec: {spec!r} (expected ID[:QTY[:PRICE]])")
    pid = parts[0].strip()
    qty = 1
    price = None
    if len(parts) >= 2 and parts[1].strip():
        try:
            qty = int(parts[1])
        except ValueError:
            raise CommandValidationError(f"invalid quantity in {spec!r}")
        if qty > MAX_QUANTITY:
            raise CommandValidationError(f"quantity in {spec!r} must be at most {MAX_QUANTITY}")
    if len(parts) == 3 and parts[2].strip():
        try:
            price = parse_money(parts[2])
        except ValueError:
            raise CommandValidationError(f"invalid price in {spec!r}")
    return pid, qty, price


# ---------- catalog ----------
def _add_catalog_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    cat = subparsers.add_parser("catalog", help="Maintain the product catalog.")
    cat_sub = cat.add_subparsers(dest="catalog_command", required=True)

    init = cat_sub.add_parser("init", help="Create/ensure the catalog DB schema exists")

    def _init(ns: argparse.Namespace) -> int:
        _, svc = _service(ns)
        LOG.info(f"Catalog DB ready at: {svc.db.db_path}")
        print(svc.db.db_path)
        return 0

    init.set_defaults(handler=_init)

    lst = cat_sub.add_parser("list", help="List products (JSON lines)")
    lst.add_argument("--search")
    lst.add_argument("--category")

    def _list(ns: argparse.Namespace) -> int:
        _, svc = _service(ns)
        for product in svc.list_products(search=ns.search, category=ns.category):
            print(json.dumps(product.to_dict(), ensure_ascii=False))
        return 0

    lst.set_defaults(handler=_list)

    cats = cat_sub.add_parser("categories", help="List distinct categories")

    def _categories(ns: argparse.Namespace) -> int:
        _, svc = _service(ns)
        for name in svc.list_categories():
            print(name)
        return 0

    cats.set_defaults(handler=_categories)

    def _product_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--name", required=True)
        p.add_argument("--category", required=True, help="Existing category, or 'Add New Category' with --new-category")
        p.add_argument("--new-category", help="Name for a new category")
        p.add_argument("--price", required=True)
        p.add_argument("--description")

    def _payload(ns: argparse.Namespace) -> dict:
        return {
            "name": ns.name,
            "category": ns.category,
            "new_category": ns.new_category,
            "price": ns.price,
            "description": ns.description,
        }

    add = cat_sub.add_parser("add", help="Add a product")
    _product_args(add)

    def _add(ns: argparse.Namespace) -> int:
        _, svc = _service(ns)
        result = svc.create_product(_payload(ns))
        if not result.success:
            LOG.error(f"Error adding product: {result.error}")
            return 1
        print(json.dumps(result.product.to_dict(), ensure_ascii=False))
        return 0

    add.set_defaults(handler=_add)

    upd = cat_sub.add_parser("update", help="Update a product")
    upd.add_argument("--id", required=True)
    _product_args(upd)

    def _update(ns: argparse.Namespace) -> int:
        _, svc = _service(ns)
        result = svc.update_product({**_payload(ns), "id": ns.id})
        if not result.success:
            LOG.error(f"Error updating product: {result.error}")
            return 1
        print(json.dumps(result.product.to_dict(), ensure_ascii=False))
        return 0

    upd.set_defaults(handler=_update)

    dele = cat_sub.add_parser("delete", help="Delete a product")
    dele.add_argument("--id", required=True)

    def _delete(ns: argparse.Namespace) -> int:
        _, svc = _service(ns)
        result = svc.delete_product(ns.id)
        if not result.success:
            LOG.error(f"Error deleting product: {result.error}")
            return 1
        LOG.info(f"Deleted product {ns.id}")
        return 0

    dele.set_defaults(handler=_delete)


# ---------- bill ----------
def _bill_commands(specs: List[str]) -> List[BillCommand]:
    """Expand item specs into engine commands, merging repeated ids."""
    commands: List[BillCommand] = []
    pending: dict = {}
    for spec in specs:
        pid, qty, price = parse_item_spec(spec)
        pending[pid] = pending.get(pid, 0) + qty
        commands.append(AddProduct(product_id=pid))
        commands.append(SetQuantity(product_id=pid, quantity=pending[pid]))
        if price is not None:
            commands.append(SetUnitPrice(product_id=pid, price=price))
    return commands


def _add_bill_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    bill = subparsers.add_parser("bill", help="Assemble a bill from catalog ids and export it.")
    bill.add_argument("--client", required=True, help="Client name printed on the bill")
    bill.add_argument(
        "--item",
        action="append",
        dest="items",
        default=[],
        help="ID[:QTY[:PRICE]]; repeat for more lines. PRICE overrides the catalog price.",
    )
    bill.add_argument("--pdf", help="Write a PDF to this path (a directory picks a default name)")
    bill.add_argument("--html", help="Write printable HTML to this path")
    bill.add_argument("--share", action="store_true", help="Print a WhatsApp share link")
    bill.add_argument("--phone", help="WhatsApp number for the share link")

    def _bill(ns: argparse.Namespace) -> int:
        settings, svc = _service(ns)
        session = BillSession(BillAssembly.from_provider(svc))
        try:
            commands = _bill_commands(ns.items)
        except CommandValidationError as exc:
            LOG.error(exc.message)
            return 2
        result = session.apply_all(commands + [GenerateBill(client_name=ns.client)])
        if not result.ok:
            LOG.error(f"Cannot generate bill ({result.error}): {result.message}")
            return 1

        snap = result.snapshot
        opts = {"currency_symbol": settings.currency_symbol, "store_name": settings.store_name}
        for line in snap.lines:
            LOG.info(
                f"{line.name:<30} {line.quantity:>4} x {format_money(line.unit_price, settings.currency_symbol)}"
                f" = {format_money(line.line_total, settings.currency_symbol)}"
            )
        LOG.info(f"Total amount: {format_money(snap.total_amount, settings.currency_symbol)}")

        try:
            if ns.pdf:
                target = expand_abs(ns.pdf)
                if os.path.isdir(target):
                    target = os.path.join(target, default_pdf_name(snap))
                print(write_pdf(snap, target, **opts))
            if ns.html:
                target = expand_abs(ns.html)
                os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
                with open(target, "w", encoding="utf-8") as fh:
                    fh.write(render_html(snap, **opts))
                LOG.info(f"Wrote: {target}")
                print(target)
            if ns.share:
                payload = build_share_payload(snap, phone=ns.phone or settings.whatsapp_number, **opts)
                print(payload.url)
        except (ExportError, OSError) as exc:
            LOG.error(f"Export failed: {exc}")
            return 3
        if not (ns.pdf or ns.html or ns.share):
            print(json.dumps(snap.to_dict(), ensure_ascii=False))
        return 0

    bill.set_defaults(handler=_bill)


# ---------- serve ----------
def _add_serve_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    serve = subparsers.add_parser("serve", help="Run the catalog and billing JSON API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8001)
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )

    def _serve(ns: argparse.Namespace) -> int:
        from ..web import create_app
        import uvicorn

        settings = load_settings(ns.root)
        app = create_app(
            db_path=expand_abs(ns.db) if ns.db else None,
            settings=settings,
            allow_origins=ns.allow_origins,
        )
        uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
        return 0

    serve.set_defaults(handler=_serve)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="billease",
        description="Product catalog maintenance and bill generation.",
    )
    parser.add_argument("--root", help="Project root used to find .env and var/ (default: auto-detect)")
    parser.add_argument("--db", help="Catalog SQLite path (overrides BILLEASE_DB_PATH)")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_catalog_cli(subparsers)
    _add_bill_cli(subparsers)
    _add_serve_cli(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")
    args = build_parser().parse_args(provided)
    code = args.handler(args)
    LOG.debug(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
