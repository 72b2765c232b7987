"""
This file contains custom, application-specific exceptions.
"""

class InvalidMonthError(ValueError):
    """Raised when a month string is not in YYYY-MM format."""
    pass

class EnrollmentNotFoundError(Exception):
    """Raised when an enrollment ID is not found in the database."""
    pass

