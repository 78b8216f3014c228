"""
Custom exceptions for the card sync pipeline with structured error context.

This module provides the exception hierarchy for handling errors
throughout the sync pipeline. Each exception includes context
information for debugging and monitoring.

Exception Hierarchy:
    SyncException (base)
    ├── ExtractionError
    │   ├── APIExtractionError
    │   │   ├── NetworkError
    │   │   ├── RateLimitError
    │   │   └── AuthenticationError
    │   ├── ResourceNotFoundError
    │   └── DataFormatError
    ├── LoadError
    │   ├── DatabaseError
    │   └── UpsertError
    ├── VersionGateError
    ├── StorageError
    ├── TransferError
    └── RetryableError / NonRetryableError (mixins)

Fatal errors (version check, catalog fetch) propagate out of a run.
Per-item errors (one card upsert, one image transfer) are caught at the
item boundary and only counted.
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, key, card id, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(SyncException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(SyncException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    - Unparseable payloads
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(SyncException):
    """Base exception for remote card database failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when a request to the card database API fails.

    Context should include:
        - api_url: The endpoint that failed
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of retries attempted
    """
    pass


class NetworkError(RetryableError, APIExtractionError):
    """Network-related errors that should be retried."""
    pass


class RateLimitError(RetryableError, APIExtractionError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds to wait before retry
        if retry_after:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, APIExtractionError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    pass


class ResourceNotFoundError(NonRetryableError, ExtractionError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    pass


class DataFormatError(NonRetryableError, ExtractionError):
    """
    Exception raised when a response cannot be parsed into the expected shape.

    Context should include:
        - api_url: The endpoint that returned the payload
        - response_body: Response body (truncated)
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(SyncException):
    """Base exception for relational store failures."""
    pass


class DatabaseError(LoadError):
    """
    Exception raised when database operations fail.

    Context should include:
        - operation: Type of database operation (INSERT, UPDATE, UPSERT)
        - table_name: Name of the table
    """
    pass


class UpsertError(LoadError):
    """
    Exception raised when a single card cannot be upserted.

    Context should include:
        - record_id: ID of the card being upserted
        - table_name: Name of the table
    """
    pass


# ============================================================================
# Version Gate Errors
# ============================================================================

class VersionGateError(SyncException):
    """
    Exception raised when the stored dataset version cannot be read or written.

    Context should include:
        - remote_version: Version declared by the card database
        - stored_version: Version recorded locally (if any)
        - operation: Operation that failed (read, insert, update)
    """
    pass


# ============================================================================
# Object Storage / Transfer Errors
# ============================================================================

class StorageError(SyncException):
    """
    Exception raised when the object store fails for anything other than
    a definitive "not found".

    Context should include:
        - bucket: Bucket name
        - key: Object key
        - error_code: S3 error code (if available)
    """
    pass


class TransferError(SyncException):
    """
    Exception raised when downloading an asset to staging fails.

    Context should include:
        - source_url: URL being downloaded
        - staging_path: Local staging file
    """
    pass
