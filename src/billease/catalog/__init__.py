"""Product catalog backed by SQLite.

Modules:
- db: DB location, schema and row-level helpers
- service: provider (reads) and mutation (Result-returning writes) boundary
"""

from .db import CatalogDatabase
from .service import CatalogResult, CatalogService

__all__ = [
    "CatalogDatabase",
    "CatalogResult",
    "CatalogService",
]
