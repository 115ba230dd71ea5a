from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from urllib.parse import unquote

import fitz  # PyMuPDF

from billease.billing import BillAssembly
from billease.domain.models import Product
from billease.export import build_share_payload, render_html, render_html_fragment, render_pdf, write_pdf


def _snapshot(lines: int = 2):
    products = [
        Product(id=f"p{i}", name=f"Item {i}", category="General", price=Decimal("10.00") + i)
        for i in range(lines)
    ]
    products[0] = Product(id="p0", name="<Shirt & Tie>", category="Clothing", price=Decimal("100.00"))
    bill = BillAssembly(products)
    for p in products:
        bill.add_product(p.id)
    bill.set_quantity("p0", 2)
    bill.set_unit_price_override("p0", 80)
    return bill.build_snapshot("Jane Doe", now=datetime(2024, 5, 1, 14, 5, 9))


def test_html_contains_rows_totals_and_escapes_names() -> None:
    snap = _snapshot()
    html = render_html(snap, currency_symbol="₹", store_name="Corner Store")
    assert "Invoice / Bill" in html
    assert "Corner Store" in html
    assert "Jane Doe" in html
    assert "01/05/2024 14:05:09" in html
    assert "&lt;Shirt &amp; Tie&gt;" in html
    assert "<Shirt & Tie>" not in html
    assert "₹80.00" in html
    assert "₹160.00" in html
    assert f"Total Amount: ₹{snap.total_amount:,.2f}" in html
    assert html.index("&lt;Shirt") < html.index("Item 1")
    assert "Thank you!" in html


def test_html_fragment_has_no_page_chrome() -> None:
    fragment = render_html_fragment(_snapshot(), currency_symbol="$")
    assert "<html" not in fragment
    assert "Total Amount: $171.00" in fragment


def test_pdf_has_table_content() -> None:
    data = render_pdf(_snapshot(), currency_symbol="₹", store_name="Corner Store")
    assert data.startswith(b"%PDF")
    with fitz.open(stream=data, filetype="pdf") as doc:
        text = doc[0].get_text()
    assert "Corner Store" in text
    assert "Client: Jane Doe" in text
    assert "Unit Price" in text
    assert "Rs. 80.00" in text
    assert "Total Amount: Rs. 171.00" in text


def test_pdf_paginates_long_bills() -> None:
    snap = _snapshot(lines=60)
    with fitz.open(stream=render_pdf(snap), filetype="pdf") as doc:
        assert doc.page_count >= 2
        text = "".join(page.get_text() for page in doc)
    assert "Item 59" in text


def test_write_pdf_does_not_overwrite(tmp_path: Path) -> None:
    snap = _snapshot()
    first = write_pdf(snap, str(tmp_path / "out" / "bill.pdf"))
    second = write_pdf(snap, str(tmp_path / "out" / "bill.pdf"))
    assert first != second
    assert Path(second).name == "bill (1).pdf"


def test_share_payload_text_and_link() -> None:
    payload = build_share_payload(_snapshot(), phone="+91 98765-43210", currency_symbol="₹")
    assert payload.phone == "919876543210"
    assert payload.url.startswith("https://wa.me/919876543210?text=")
    assert unquote(payload.url.split("?text=", 1)[1]) == payload.text
    assert "Client: Jane Doe" in payload.text
    assert "1. <Shirt & Tie> x 2 @ ₹80.00 = ₹160.00" in payload.text
    assert "*Total Amount: ₹171.00*" in payload.text


def test_share_link_without_phone() -> None:
    payload = build_share_payload(_snapshot())
    assert payload.url.startswith("https://wa.me/?text=")
    assert payload.phone is None
