from __future__ import annotations


class BillingError(Exception):
    """Recoverable operator error. ``kind`` names the failure for callers."""

    kind = "BillingError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class UnknownProduct(BillingError):
    kind = "UnknownProduct"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id!r} is not in the catalog.")
        self.product_id = product_id


class UnknownLine(BillingError):
    kind = "UnknownLine"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"No bill line for product {product_id!r}.")
        self.product_id = product_id


class MissingClientName(BillingError):
    kind = "MissingClientName"

    def __init__(self) -> None:
        super().__init__("Please enter the client name before generating the bill.")


class EmptyBill(BillingError):
    kind = "EmptyBill"

    def __init__(self) -> None:
        super().__init__("Please add products with quantities greater than zero to the bill.")


class NewCategoryNameRequired(BillingError):
    kind = "NewCategoryNameRequired"

    def __init__(self) -> None:
        super().__init__("New category name is required.")


class CategoryRequired(BillingError):
    kind = "CategoryRequired"

    def __init__(self) -> None:
        super().__init__("Category is required.")


class CommandValidationError(BillingError):
    kind = "ValidationError"


class ExportError(BillingError):
    kind = "ExportError"
