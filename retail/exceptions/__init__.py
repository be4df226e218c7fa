"""Custom exceptions for the retail application."""


class RetailError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(RetailError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class InvalidRequestError(BusinessLogicError):
    """Malformed or empty input (no items, non-positive quantity...)."""


class InvalidStatusError(BusinessLogicError):
    """Status value outside the recognized set, or a forbidden transition."""
    def __init__(self, message, field=None):
        payload = {'field': field} if field else None
        super().__init__(message, payload=payload)
        self.field = field


class NothingToUpdateError(BusinessLogicError):
    """None of the updatable fields was supplied."""
    def __init__(self, message="No valid fields to update"):
        super().__init__(message)


class NotFoundError(RetailError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ProductNotFoundError(NotFoundError):
    """Referenced product is missing or no longer active."""
    def __init__(self, product_id):
        super().__init__(
            f'Product {product_id} does not exist or has been deleted',
            payload={'product_id': product_id}
        )
        self.product_id = product_id


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id):
        super().__init__(f'Order {order_id} not found', payload={'order_id': order_id})
        self.order_id = order_id


class ReceiptNotFoundError(NotFoundError):
    def __init__(self, stock_in_id):
        super().__init__(
            f'Stock-in receipt {stock_in_id} not found',
            payload={'stock_in_order_id': stock_in_id}
        )
        self.stock_in_id = stock_in_id


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_id):
        super().__init__(f'Customer {customer_id} not found', payload={'customer_id': customer_id})
        self.customer_id = customer_id


class SupplierNotFoundError(NotFoundError):
    def __init__(self, supplier_id):
        super().__init__(f'Supplier {supplier_id} not found', payload={'supplier_id': supplier_id})
        self.supplier_id = supplier_id


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, available, requested, product_id=None):
        message = (
            f'Insufficient stock for "{product_name}": '
            f'available {available}, requested {requested}'
        )
        payload = {
            'product_id': product_id,
            'product_name': product_name,
            'available': available,
            'requested': requested,
        }
        super().__init__(message, status_code=409, payload=payload)
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class StorageError(RetailError):
    """Underlying database failure. The message never carries driver detail."""
    def __init__(self, message="A storage error occurred, no changes were saved"):
        super().__init__(message, 500)


class UnauthorizedError(RetailError):
    """Raised when no acting user is attached to the request."""
    def __init__(self, message="Authentication required"):
        super().__init__(message, 401)
