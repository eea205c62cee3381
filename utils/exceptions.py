"""
Domain exceptions.
All business-rule failures are ValueError subclasses so callers that only
catch ValueError keep working; routes map them to 4xx responses.
"""


class ValidationError(ValueError):
    """Input failed validation. May carry a list of field errors."""

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or [message]


class AvailabilityError(ValueError):
    """Requested dates are not bookable."""

    def __init__(self, message: str, unavailable_dates: list = None, restrictions: list = None):
        super().__init__(message)
        self.unavailable_dates = unavailable_dates or []
        self.restrictions = restrictions or []


class NotFoundError(ValueError):
    """Entity does not exist or is not visible to the caller."""


class CurrencyError(ValueError):
    """Currency lookup or conversion failed."""


class CloneError(RuntimeError):
    """Database clone failed."""


class CloneInProgressError(CloneError):
    """Another clone operation holds the lock."""


class ProductionProtectionError(CloneError):
    """Attempt to overwrite a production database."""
