"""Core package - Configuration, logging, exceptions.

This package provides foundational infrastructure used by all other layers.

Modules:
    - config: Environment and configuration management
    - logging: Structured JSON logging
    - exceptions: Custom exception hierarchy
"""

from cadenceiq.core.exceptions import (
    AlreadyCompletedError,
    CadenceIQError,
    ConfigurationError,
    DatabaseError,
    ExternalFetchFailure,
    ImportError_,
    IntegrationError,
    NotFoundError,
    PaymentError,
    SequenceError,
    ValidationError,
)

__all__ = [
    "CadenceIQError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "DatabaseError",
    "ImportError_",
    "SequenceError",
    "AlreadyCompletedError",
    "IntegrationError",
    "ExternalFetchFailure",
    "PaymentError",
]
