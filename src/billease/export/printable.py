"""Printable HTML rendering of a bill snapshot."""

from __future__ import annotations

from jinja2 import DictLoader, Environment, TemplateError, select_autoescape

from ..billing.errors import ExportError
from ..domain.models import BillSnapshot
from ..domain.normalize import format_money
from ..logging import get_logger

LOG = get_logger("export-html")


TEMPLATES = {
"bill.html": r"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Bill Print</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 20px; }
    .print-container { max-width: 800px; margin: auto; }
    .header { text-align: center; margin-bottom: 20px; }
    .header h1 { margin: 0; font-size: 1.5rem; }
    .header p { margin: 5px 0; color: #555; font-size: 0.9rem; }
    .item-table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
    .item-table th, .item-table td { border: 1px solid #ddd; padding: 8px; text-align: left; font-size: 0.9rem; }
    .item-table th { background-color: #f2f2f2; }
    .text-right { text-align: right !important; }
    .text-center { text-align: center !important; }
    .total-section { text-align: right; margin-top: 15px; font-size: 1rem; font-weight: bold; }
    .footer { text-align: center; margin-top: 30px; font-size: 0.8rem; color: #777; }
  </style>
</head>
<body>
  <div class="print-container">
    {% include "bill_body.html" %}
    <div class="footer">Thank you!</div>
  </div>
</body>
</html>
""",
"bill_body.html": r"""<div class="header">
  <h1>{{ store_name }}</h1>
  <p>Invoice / Bill</p>
  <p>Date Generated: {{ snapshot.generated_at.strftime("%d/%m/%Y %H:%M:%S") }}</p>
</div>
<div class="meta">
  <p><strong>Client:</strong> {{ snapshot.client_name }}</p>
  <p><strong>Date:</strong> {{ snapshot.generated_at.strftime("%d/%m/%Y") }}</p>
  <p><strong>Time:</strong> {{ snapshot.generated_at.strftime("%H:%M:%S") }}</p>
</div>
<table class="item-table">
  <thead>
    <tr>
      <th>Product</th>
      <th class="text-center">Qty</th>
      <th class="text-right">Unit Price</th>
      <th class="text-right">Total</th>
    </tr>
  </thead>
  <tbody>
    {% for line in snapshot.lines %}
    <tr>
      <td>{{ line.name }}</td>
      <td class="text-center">{{ line.quantity }}</td>
      <td class="text-right">{{ line.unit_price | money }}</td>
      <td class="text-right">{{ line.line_total | money }}</td>
    </tr>
    {% endfor %}
  </tbody>
</table>
<div class="total-section">
  <p>Total Amount: {{ snapshot.total_amount | money }}</p>
</div>
""",
}


def _environment(currency_symbol: str) -> Environment:
    env = Environment(loader=DictLoader(TEMPLATES), autoescape=select_autoescape(["html"]))
    env.filters["money"] = lambda value: format_money(value, currency_symbol)
    return env


def render_html(snapshot: BillSnapshot, *, currency_symbol: str = "", store_name: str = "BillEase") -> str:
    """Full printable page (with print CSS) for a snapshot."""
    return _render("bill.html", snapshot, currency_symbol, store_name)


def render_html_fragment(snapshot: BillSnapshot, *, currency_symbol: str = "", store_name: str = "BillEase") -> str:
    """Body-only fragment for embedding in a preview dialog."""
    return _render("bill_body.html", snapshot, currency_symbol, store_name)


def _render(template: str, snapshot: BillSnapshot, currency_symbol: str, store_name: str) -> str:
    try:
        html = _environment(currency_symbol).get_template(template).render(snapshot=snapshot, store_name=store_name)
    except TemplateError as exc:
        LOG.error(f"HTML rendering failed: {exc}")
        raise ExportError(f"Could not render bill: {exc}") from exc
    LOG.debug("Rendered %s for %r (%d chars)", template, snapshot.client_name, len(html))
    return html
