"""Exceptions raised by the embargo pipeline."""


class EmbargoError(Exception):
    """Base class for all errors raised by `etl_embargo`."""


class BlobStoreError(EmbargoError):
    """A list, get, put, or delete call against the object store failed."""


class WhitelistLoadError(EmbargoError):
    """The site whitelist could not be fetched, read, or parsed."""


class ArchiveSplitError(EmbargoError):
    """An archive could not be decompressed, read, or re-packaged."""


class ArchiveTooLargeError(ArchiveSplitError):
    """An archive exceeds the configured maximum size held in memory."""


class InvalidDateError(EmbargoError, ValueError):
    """A date is malformed or outside the range the operation accepts."""


class EmbargoBatchError(EmbargoError):
    """One or more archives of a day batch failed to be split."""

    def __init__(self, message: str, summary=None):
        super().__init__(message)
        self.summary = summary
