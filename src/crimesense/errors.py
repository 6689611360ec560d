"""Exceptions raised by the CrimeSense storage layer."""


class CrimeSenseError(Exception):
    """Base class for every error raised by this package."""


class StorageUnavailable(CrimeSenseError):
    """The underlying database engine could not be opened."""


class WriteError(CrimeSenseError):
    """An add, delete or clear operation failed."""


class ReadError(CrimeSenseError):
    """A get_all or get_by_id operation failed."""


class ValidationError(CrimeSenseError):
    """
    Caller-supplied data is missing required fields or has fields of the
    wrong type.

    Attributes:
        missing: names of the offending fields (missing, blank or not text)
    """

    def __init__(self, message, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])
