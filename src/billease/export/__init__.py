"""Render bill snapshots for printing, PDF download and sharing."""

from .pdf import default_pdf_name, render_pdf, write_pdf
from .printable import render_html, render_html_fragment
from .share import SharePayload, build_share_payload

__all__ = [
    "render_html",
    "render_html_fragment",
    "render_pdf",
    "write_pdf",
    "default_pdf_name",
    "SharePayload",
    "build_share_payload",
]
