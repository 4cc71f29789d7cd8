"""Custom exceptions for FootballBook"""

from typing import Any, List, Optional


class FootballBookError(Exception):
    """Base exception for FootballBook"""
    pass


class ConfigError(FootballBookError):
    """Configuration error"""
    pass


class StoreError(FootballBookError):
    """Credential store could not be read or written"""
    pass


class DuplicateIdentifierError(StoreError):
    """Insert rejected because the identifier is already taken"""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Identifier '{identifier}' already exists")


class NetworkError(FootballBookError):
    """Transport-level failure talking to the API (timeout, refused connection)"""
    pass


class ApiError(FootballBookError):
    """Non-2xx response from the API"""

    def __init__(self, status: int, error: Optional[str] = None, details: Optional[List[Any]] = None):
        self.status = status
        self.error = error or f"HTTP error! status: {status}"
        self.details = details or []
        super().__init__(self.error)


class StoreNotEmptyError(StoreError):
    """Insert rejected because it was only allowed into an empty collection"""
    pass
