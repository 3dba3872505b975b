"""
Exceptions shared by the storage backends and the HTTP layer.
"""

from __future__ import annotations


class CrisisKitError(Exception):
    """Base class for CrisisKit errors."""


class NotFoundError(CrisisKitError):
    """Raised when a mutation targets a record that does not exist."""


class BackendUnavailableError(CrisisKitError):
    """Raised when a storage backend call fails at the transport level."""
