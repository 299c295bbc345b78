# hotprices/errors.py

"""Exception classes shared across scraping, storage and merging.

Every fatal class carries the process exit code the CLI reports, so the
orchestrator invoking a run can tell a retryable outage from a broken
scrape or a corrupt history file.
"""


class HotpricesError(Exception):
    """Base exception for all hotprices errors."""

    exit_code: int = 1

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


# --- Fetching ---------------------------------------------------------------


class FetchError(HotpricesError):
    """Raised when a request could not produce a usable response."""

    exit_code = 3

    def __init__(
        self,
        message: str,
        url: str = "",
        status: int | None = None,
        retryable: bool = False,
    ):
        self.url = url
        self.status = status
        self.retryable = retryable
        super().__init__(message)


class FetchFatalError(FetchError):
    """Non-retryable failure: 4xx other than 429, or a malformed body."""


class RetriesExhaustedError(FetchError):
    """A retryable failure persisted through every attempt."""

    def __init__(self, message: str, url: str = "", status: int | None = None):
        super().__init__(message, url=url, status=status, retryable=True)


# --- Normalisation & building -------------------------------------------------


class NormalizeError(HotpricesError):
    """A raw entry could not be mapped to a ProductRecord."""


class DuplicateProductError(HotpricesError):
    """A snapshot was assembled with the same product identity twice."""

    def __init__(self, retailer: str, product_id: str):
        super().__init__(
            f"Duplicate product {product_id} in {retailer} snapshot"
        )


class BuildValidationError(HotpricesError):
    """A scrape produced too few products or too many failures."""

    exit_code = 4


class RunDeadlineExceeded(HotpricesError):
    """The overall scrape deadline passed before the catalog was read."""

    exit_code = 5


# --- Storage ----------------------------------------------------------------


class StoreIOError(HotpricesError):
    """Reading or publishing a durable artifact failed."""

    exit_code = 6


class SnapshotNotFoundError(StoreIOError):
    """No snapshot file exists for the requested retailer and day."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Snapshot not found at {path}")


# --- Merging ----------------------------------------------------------------


class MergeError(HotpricesError):
    """A merge was rejected before any change was applied."""

    exit_code = 7


class MergeOrderError(MergeError):
    """A snapshot older than the history watermark was supplied."""


class PartialSnapshotError(MergeError):
    """A quick-mode snapshot was supplied without explicit opt-in."""


# --- Codec ------------------------------------------------------------------


class CodecError(HotpricesError):
    """Serialisation, compression or decoding failed."""

    exit_code = 8
