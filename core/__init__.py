"""
Core utilities and configuration for the card sync system.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Engine and session factories
    storage: Object store client (S3) used as the image destination
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_engine, create_session_maker
    from core.storage import S3ObjectStore
    from core.exceptions import APIExtractionError, NetworkError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Open a session for one run
    engine = create_engine(settings.database_url)
    async with create_session_maker(engine)() as session:
        ...
    await engine.dispose()
"""

__all__ = [
    "settings",
    "create_engine",
    "create_session_maker",
    "init_db",
    "setup_logging",
    "ObjectStore",
    "S3ObjectStore",
    # Exceptions
    "SyncException",
    "ExtractionError",
    "APIExtractionError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "DataFormatError",
    "LoadError",
    "DatabaseError",
    "UpsertError",
    "VersionGateError",
    "StorageError",
    "TransferError",
    "RetryableError",
    "NonRetryableError",
]
