"""
Custom exceptions for the funding data pipeline.

Connectors raise these; the aggregation service catches everything at its
fan-out boundary, so none of them reach the read surface.
"""


class FundingBoardError(Exception):
    """Base exception for all funding pipeline errors."""


class HttpError(FundingBoardError):
    """Raised when an upstream responds with a non-2xx status."""

    def __init__(self, message: str, status: int, url: str):
        super().__init__(message)
        self.status = status
        self.url = url


class NotFoundError(HttpError):
    """Raised on 404; the instrument or market is absent and can be skipped."""


class RateLimitedError(HttpError):
    """Raised when an upstream keeps answering 429 after all retry attempts."""


class EmptyResponseError(FundingBoardError):
    """Raised when an upstream payload is valid but carries no usable records."""


class MalformedResponseError(FundingBoardError):
    """Raised when an upstream payload is missing expected fields."""
