"""Paginated PDF export of a bill snapshot."""

from __future__ import annotations

import os
from typing import List, Tuple

import fitz  # PyMuPDF

from ..billing.errors import ExportError
from ..domain.models import BillSnapshot, SnapshotLine
from ..domain.normalize import format_money
from ..logging import get_logger

LOG = get_logger("export-pdf")

PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")
MARGIN = 50
ROW_HEIGHT = 20
FONT = "helv"
FONT_BOLD = "hebo"
FONT_SIZE = 10
BOTTOM_LIMIT = PAGE_HEIGHT - 80
GRID = (0.85, 0.85, 0.85)
HEADER_FILL = (0.95, 0.95, 0.95)
MUTED = (0.35, 0.35, 0.35)

# Base-14 fonts only cover Latin-1; spell out symbols they cannot draw.
SYMBOL_FALLBACKS = {"₹": "Rs. ", "€": "EUR ", "₽": "RUB ", "₩": "KRW "}

# (header, left x, right x, alignment)
COLUMNS: List[Tuple[str, float, float, str]] = [
    ("Product", MARGIN, 300, "left"),
    ("Qty", 300, 360, "center"),
    ("Unit Price", 360, 460, "right"),
    ("Total", 460, PAGE_WIDTH - MARGIN, "right"),
]


def pdf_currency_symbol(symbol: str) -> str:
    try:
        symbol.encode("latin-1")
        return symbol
    except UnicodeEncodeError:
        return SYMBOL_FALLBACKS.get(symbol, "")


def ensure_dir(path: str) -> str:
    absdir = os.path.abspath(os.path.expanduser(os.path.expandvars(path)))
    if not os.path.isdir(absdir):
        LOG.info(f"Output directory does not exist. Creating: {absdir}")
        os.makedirs(absdir, exist_ok=True)
    return absdir


def unique_path(base_path: str) -> str:
    if not os.path.exists(base_path):
        return base_path
    stem, ext = os.path.splitext(base_path)
    counter = 1
    while True:
        cand = f"{stem} ({counter}){ext}"
        if not os.path.exists(cand):
            return cand
        counter += 1


def _fit(text: str, width: float, fontname: str = FONT) -> str:
    """Trim text with an ellipsis so it fits the column width."""
    if fitz.get_text_length(text, fontname=fontname, fontsize=FONT_SIZE) <= width:
        return text
    while text and fitz.get_text_length(text + "...", fontname=fontname, fontsize=FONT_SIZE) > width:
        text = text[:-1]
    return text + "..."


def _cell(page: fitz.Page, text: str, left: float, right: float, align: str, y: float, fontname: str = FONT) -> None:
    pad = 4
    text = _fit(text, right - left - 2 * pad, fontname)
    width = fitz.get_text_length(text, fontname=fontname, fontsize=FONT_SIZE)
    if align == "right":
        x = right - pad - width
    elif align == "center":
        x = left + (right - left - width) / 2
    else:
        x = left + pad
    page.insert_text((x, y + ROW_HEIGHT - 6), text, fontname=fontname, fontsize=FONT_SIZE)


def _draw_table_header(page: fitz.Page, y: float) -> float:
    rect = fitz.Rect(MARGIN, y, PAGE_WIDTH - MARGIN, y + ROW_HEIGHT)
    page.draw_rect(rect, color=GRID, fill=HEADER_FILL)
    for header, left, right, align in COLUMNS:
        _cell(page, header, left, right, align, y, FONT_BOLD)
    return y + ROW_HEIGHT


def _draw_row(page: fitz.Page, line: SnapshotLine, y: float, symbol: str) -> float:
    values = (
        line.name,
        str(line.quantity),
        format_money(line.unit_price, symbol),
        format_money(line.line_total, symbol),
    )
    for value, (_, left, right, align) in zip(values, COLUMNS):
        _cell(page, value, left, right, align, y)
    page.draw_line((MARGIN, y + ROW_HEIGHT), (PAGE_WIDTH - MARGIN, y + ROW_HEIGHT), color=GRID)
    return y + ROW_HEIGHT


def _draw_heading(page: fitz.Page, snapshot: BillSnapshot, store_name: str) -> float:
    y = MARGIN + 10
    title_width = fitz.get_text_length(store_name, fontname=FONT_BOLD, fontsize=18)
    page.insert_text(((PAGE_WIDTH - title_width) / 2, y), store_name, fontname=FONT_BOLD, fontsize=18)
    y += 20
    sub = "Invoice / Bill"
    sub_width = fitz.get_text_length(sub, fontname=FONT, fontsize=11)
    page.insert_text(((PAGE_WIDTH - sub_width) / 2, y), sub, fontname=FONT, fontsize=11, color=MUTED)
    y += 30
    generated = snapshot.generated_at
    for label, value in (
        ("Client", snapshot.client_name),
        ("Date", generated.strftime("%d/%m/%Y")),
        ("Time", generated.strftime("%H:%M:%S")),
    ):
        page.insert_text((MARGIN, y), f"{label}: {value}", fontname=FONT, fontsize=FONT_SIZE)
        y += 15
    return y + 10


def _new_page(doc: fitz.Document) -> fitz.Page:
    return doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)


def build_pdf(snapshot: BillSnapshot, *, currency_symbol: str = "", store_name: str = "BillEase") -> fitz.Document:
    symbol = pdf_currency_symbol(currency_symbol)
    doc = fitz.open()
    doc.set_metadata({"title": f"Bill - {snapshot.client_name}", "creator": store_name})

    page = _new_page(doc)
    y = _draw_heading(page, snapshot, store_name)
    y = _draw_table_header(page, y)
    for line in snapshot.lines:
        if y + ROW_HEIGHT > BOTTOM_LIMIT:
            page = _new_page(doc)
            y = _draw_table_header(page, MARGIN)
        y = _draw_row(page, line, y, symbol)

    if y + 60 > BOTTOM_LIMIT:
        page = _new_page(doc)
        y = MARGIN
    total = f"Total Amount: {format_money(snapshot.total_amount, symbol)}"
    total_width = fitz.get_text_length(total, fontname=FONT_BOLD, fontsize=12)
    page.insert_text((PAGE_WIDTH - MARGIN - total_width, y + 25), total, fontname=FONT_BOLD, fontsize=12)
    thanks = "Thank you!"
    thanks_width = fitz.get_text_length(thanks, fontname=FONT, fontsize=9)
    page.insert_text(((PAGE_WIDTH - thanks_width) / 2, y + 55), thanks, fontname=FONT, fontsize=9, color=MUTED)
    return doc


def render_pdf(snapshot: BillSnapshot, *, currency_symbol: str = "", store_name: str = "BillEase") -> bytes:
    """Return the PDF document for a snapshot as bytes."""
    LOG.info("Creating bill PDF for %r", snapshot.client_name)
    try:
        doc = build_pdf(snapshot, currency_symbol=currency_symbol, store_name=store_name)
        try:
            data = doc.tobytes()
        finally:
            doc.close()
    except (RuntimeError, ValueError) as exc:
        LOG.error(f"PDF creation failed: {exc}")
        raise ExportError(f"Could not generate PDF: {exc}") from exc
    LOG.debug("Bill PDF rendered (%d bytes)", len(data))
    return data


def write_pdf(
    snapshot: BillSnapshot,
    output_path: str,
    *,
    currency_symbol: str = "",
    store_name: str = "BillEase",
    overwrite: bool = False,
) -> str:
    """Write the PDF and return the path used (de-duplicated unless overwrite)."""
    ensure_dir(os.path.dirname(os.path.abspath(output_path)))
    target = os.path.abspath(output_path) if overwrite else unique_path(os.path.abspath(output_path))
    data = render_pdf(snapshot, currency_symbol=currency_symbol, store_name=store_name)
    try:
        with open(target, "wb") as fh:
            fh.write(data)
    except OSError as exc:
        LOG.error(f"Writing PDF failed: {exc}")
        raise ExportError(f"Could not write PDF to {target}: {exc}") from exc
    LOG.info(f"PDF created: {target}")
    return target


def default_pdf_name(snapshot: BillSnapshot) -> str:
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in snapshot.client_name).strip("_") or "bill"
    return f"Bill_{safe}_{snapshot.generated_at.strftime('%Y%m%d_%H%M%S')}.pdf"
