class FeedError(Exception):
    """Base exception for failures talking to or decoding the bus feed."""


class BusDecodeError(FeedError):
    """Raised when a feed record lacks a required field or has it malformed."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        if index is not None:
            message = f"record {index}: {message}"
        super().__init__(message)
        self.index = index


class FeedUnavailableError(FeedError):
    """Raised when the feed cannot be reached after all retry attempts."""
