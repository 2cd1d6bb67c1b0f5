# exceptions.py
# Description: Exception types raised by the catalog store and its storage backends.
#
#######################################################################################################################


class CatalogDBError(Exception):
    """Base exception for catalog store errors."""
    pass


class InputError(ValueError):
    """Caller-supplied fields that cannot be stored."""
    pass


class StorageError(CatalogDBError):
    """The persistence medium failed (I/O error, database error, corrupt document)."""

    def __init__(self, message="Storage operation failed.", key=None):
        super().__init__(message)
        self.key = key

    def __str__(self):
        base = super().__str__()
        return f"{base} (Key: {self.key})" if self.key else base


class ImportFormatError(CatalogDBError):
    """An import payload is not a sequence of records."""
    pass
