class ReplenishmentError(Exception):
    """Base exception for Replenishment Engine errors.

    Subclasses only override ``default_message``, which is used when the
    error is raised without a message.
    """

    default_message = "An error occurred in the Replenishment Engine"

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary for batch results."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(ReplenishmentError):
    """Invalid settings or parameter sets."""
    default_message = "Configuration error"


class DatabaseError(ReplenishmentError):
    """Engine creation or schema setup failed."""
    default_message = "Database error"


class ValidationError(ReplenishmentError):
    """Malformed input data, such as a non-positive series length."""
    default_message = "Validation error"


class ForecastError(ReplenishmentError):
    default_message = "Forecasting error"


class SafetyStockError(ReplenishmentError):
    default_message = "Safety stock calculation error"


class AllocationError(ReplenishmentError):
    default_message = "Allocation error"


class NotFoundError(ReplenishmentError):
    """A warehouse, variant or product that must exist is missing."""
    default_message = "Resource not found"


class BatchProcessError(ReplenishmentError):
    """One or more nightly job steps failed."""
    default_message = "Batch process error"
