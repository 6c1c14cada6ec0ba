class AllocationError(Exception):
    """Base exception for Shipment Allocation errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Shipment Allocation engine"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(AllocationError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(AllocationError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(AllocationError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(AllocationError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class InsufficientStockError(AllocationError):
    """Raised when requested units can be neither taken from stock nor backordered.

    ``unfulfillable`` maps variant id to the number of units left over.
    """

    def __init__(self, message=None, code=None, details=None, unfulfillable=None):
        self.unfulfillable = dict(unfulfillable or {})
        message = message or "Insufficient stock"
        if details is None and self.unfulfillable:
            details = {'unfulfillable': self.unfulfillable}
        super().__init__(message, code or 'INSUFFICIENT_STOCK', details)


class ShipmentError(AllocationError):
    """Exception raised for shipment-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Shipment error"
        super().__init__(message, code, details)


class CalculationError(AllocationError):
    """Exception raised for shipping cost calculation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)
