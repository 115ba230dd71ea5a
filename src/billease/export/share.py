"""Share payloads (message text + WhatsApp link) for a bill snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote

from ..domain.models import BillSnapshot
from ..domain.normalize import format_money

WHATSAPP_BASE_URL = "https://wa.me/"


@dataclass(frozen=True)
class SharePayload:
    text: str
    url: str
    phone: Optional[str] = None

    def to_dict(self) -> dict:
        return {"text": self.text, "url": self.url, "phone": self.phone}


def clean_phone(phone: Optional[str]) -> Optional[str]:
    """Digits only, as wa.me expects (country code, no '+' or spaces)."""
    if not phone:
        return None
    digits = "".join(ch for ch in str(phone) if ch.isdigit())[:15]
    return digits or None


def share_text(snapshot: BillSnapshot, *, currency_symbol: str = "", store_name: str = "BillEase") -> str:
    generated = snapshot.generated_at
    rows: List[str] = [
        f"*{store_name} - Invoice / Bill*",
        f"Client: {snapshot.client_name}",
        f"Date: {generated.strftime('%d/%m/%Y %H:%M')}",
        "",
    ]
    for idx, line in enumerate(snapshot.lines, start=1):
        rows.append(
            f"{idx}. {line.name} x {line.quantity} @ {format_money(line.unit_price, currency_symbol)}"
            f" = {format_money(line.line_total, currency_symbol)}"
        )
    rows.extend(["", f"*Total Amount: {format_money(snapshot.total_amount, currency_symbol)}*", "Thank you!"])
    return "\n".join(rows)


def whatsapp_link(text: str, phone: Optional[str] = None) -> str:
    target = clean_phone(phone) or ""
    return f"{WHATSAPP_BASE_URL}{target}?text={quote(text, safe='')}"


def build_share_payload(
    snapshot: BillSnapshot,
    *,
    phone: Optional[str] = None,
    currency_symbol: str = "",
    store_name: str = "BillEase",
) -> SharePayload:
    text = share_text(snapshot, currency_symbol=currency_symbol, store_name=store_name)
    return SharePayload(text=text, url=whatsapp_link(text, phone), phone=clean_phone(phone))
