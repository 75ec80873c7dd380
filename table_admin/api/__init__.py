"""REST API client for the table admin backend."""

from .client import TableApiClient
from .errors import ApiError, MissingPrimaryKeyError

__all__ = [
    "ApiError",
    "MissingPrimaryKeyError",
    "TableApiClient",
]
