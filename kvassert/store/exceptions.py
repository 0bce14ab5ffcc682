"""
Custom exception hierarchy for store operations.

Client library errors are translated into these at the store boundary so
callers never depend on the client's own exception types.
"""


class StoreException(Exception):
    """
    Base exception for all store-related errors.
    """

    pass


class StoreBusyError(StoreException):
    """
    Raised when the store keeps answering busy/timeout after retry exhaustion.

    Typically the server is still loading its dataset into memory.
    """

    pass


class NetworkError(StoreException):
    """
    Raised when network-level failures occur (connection refused, DNS failure, etc.).
    """

    pass


class StorePermissionError(StoreException):
    """
    Raised when authentication fails or an ACL denies the command.

    Indicates a configuration issue that must be fixed in the store settings.
    """

    pass
