# app/domain/errors.py


class ShopError(Exception):
    """Base for every client-facing error. Rendered as {success: false, message}."""

    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return "Request failed"


class ValidationFailed(ShopError):
    status_code = 400


class Unauthenticated(ShopError):
    status_code = 401

    def default_message(self) -> str:
        return "Unauthorized"


class Forbidden(ShopError):
    status_code = 403

    def default_message(self) -> str:
        return "Access denied"


class NotFoundError(ShopError):
    status_code = 404

    def default_message(self) -> str:
        return "Not found"


class ProductNotFound(NotFoundError):
    def default_message(self) -> str:
        return "Product not found"


class CategoryNotFound(NotFoundError):
    def default_message(self) -> str:
        return "Category not found"


class ItemNotFound(NotFoundError):
    def default_message(self) -> str:
        return "Item not in cart"


class OrderNotFound(NotFoundError):
    def default_message(self) -> str:
        return "Order not found"


class VariantNotAvailable(NotFoundError):
    def default_message(self) -> str:
        return "Variant not available"


class ConflictError(ShopError):
    status_code = 409


class TooManyAttempts(ShopError):
    status_code = 429

    def default_message(self) -> str:
        return "Too many attempts, request a new code"


class ProductNotActive(ShopError):
    def default_message(self) -> str:
        return "Product not active"


# checkout / stock


class CheckoutError(ShopError):
    status_code = 400


class EmptyCart(CheckoutError):
    def default_message(self) -> str:
        return "Cart empty"


class VariantNotFound(CheckoutError):
    def default_message(self) -> str:
        return "Variant not found"


class InsufficientStock(CheckoutError):
    def __init__(self, sku: str | None = None, message: str | None = None):
        self.sku = sku
        if message is None:
            message = f"Insufficient stock for SKU {sku}" if sku else "Insufficient stock"
        super().__init__(message)


class StockConflict(CheckoutError):
    def __init__(self, sku: str | None = None):
        self.sku = sku
        super().__init__(
            f"Failed to reserve stock for SKU {sku}, please retry checkout"
            if sku
            else "Failed to reserve stock, please retry checkout"
        )


class PersistenceError(ShopError):
    status_code = 500

    def default_message(self) -> str:
        return "Checkout failed, please retry"
