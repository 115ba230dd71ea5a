"""Bill assembly: line-item state, selector helpers and the command layer.

Modules:
- engine: BillAssembly, the per-session working set of bill lines
- selector: grouped/searchable picker and category resolution
- commands: validated command objects and the BillSession result wrapper
- errors: operator error taxonomy
"""

from .engine import BillAssembly
from .errors import (
    BillingError,
    CategoryRequired,
    CommandValidationError,
    EmptyBill,
    ExportError,
    MissingClientName,
    NewCategoryNameRequired,
    UnknownLine,
    UnknownProduct,
)
from .selector import ADD_NEW_CATEGORY, ComboboxOption, Selector
from .commands import BillSession, OperationResult

__all__ = [
    "BillAssembly",
    "BillSession",
    "OperationResult",
    "ComboboxOption",
    "Selector",
    "ADD_NEW_CATEGORY",
    "BillingError",
    "CategoryRequired",
    "CommandValidationError",
    "EmptyBill",
    "ExportError",
    "MissingClientName",
    "NewCategoryNameRequired",
    "UnknownLine",
    "UnknownProduct",
]
