"""
BillEase – catalog-backed bill assembly and invoice export.

Packages:
- catalog: SQLite product catalog (provider + mutation boundary)
- billing: bill assembly engine, selector helpers, command layer
- export: printable HTML, PDF and share-link rendering of bill snapshots
- web: Starlette JSON API; cli: `billease` command line
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "logging",
    "paths",
]
