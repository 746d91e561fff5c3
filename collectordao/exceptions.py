"""
CollectorDAO Exceptions

Base exception classes shared across the package. Governance-specific
errors live beside the component that raises them and derive from
GovernanceError.
"""


class CollectorDAOException(Exception):
    """Base exception for CollectorDAO."""
    pass


class InvalidAddressError(CollectorDAOException):
    """Invalid address format."""
    pass


class ClockError(CollectorDAOException):
    """Block counter or timestamp moved backwards."""
    pass


class StorageError(CollectorDAOException):
    """State snapshot could not be read or written."""
    pass


class ConfigurationError(CollectorDAOException):
    """Configuration error."""
    pass


class GovernanceError(CollectorDAOException):
    """Base governance exception."""
    pass
