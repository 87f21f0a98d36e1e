"""Database exceptions."""

class DatabaseError(Exception):
    """Base class for database errors."""
    pass

class DatabaseSchemaError(DatabaseError):
    """Raised when schema loading or installation fails."""
    pass

class StorageBackendError(DatabaseError):
    """Raised when a storage backend is misconfigured or not opened."""
    pass
