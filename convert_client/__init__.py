"""Python client for the PDF conversion API."""

from convert_client.client import Client
from convert_client.errors import (
    AuthenticationError,
    ConversionFailed,
    ConvertError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    PollingTimeout,
    RateLimitError,
    ServerError,
    ValidationError,
)
from convert_client.types import Job, SubmittedJob, Usage

__version__ = "1.0.0"

__all__: list[str] = [
    "Client",
    "ConvertError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "ValidationError",
    "ServerError",
    "NetworkError",
    "ConversionFailed",
    "PollingTimeout",
    "Job",
    "SubmittedJob",
    "Usage",
]
