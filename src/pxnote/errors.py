"""Error taxonomy for rotation cycles.

Every fatal error aborts the current cycle and leaves the previously published
generation untouched. RetireError is the exception: it is reported on the
cycle result and never raised.
"""


class PublishError(Exception):
    """Base class for errors raised during a rotation cycle."""

    phase = "unknown"

    def __init__(self, message: str, index_name: str | None = None):
        super().__init__(message)
        self.index_name = index_name


class DirectoryError(PublishError):
    """Listing or parsing physical index names failed."""

    phase = "preparing"


class ParseError(DirectoryError):
    """A physical index name does not follow the {logical}_{generation} form."""


class CreateError(PublishError):
    """The engine rejected the new generation."""

    phase = "creating"


class FetchError(PublishError):
    """A producer failed to retrieve its records."""

    phase = "populating"

    def __init__(self, message: str, index_name: str | None = None, kind: str | None = None):
        super().__init__(message, index_name)
        self.kind = kind


class BulkWriteError(PublishError):
    """The engine rejected some or all documents of a bulk write."""

    phase = "populating"


class RotationCancelled(PublishError):
    """The cycle was cancelled before the new generation was sealed."""

    phase = "populating"


class RetireError(PublishError):
    """A stale generation could not be deleted."""

    phase = "retiring"
