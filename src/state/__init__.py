"""
Terraform state retrieval.

Resolves a named backend declaration (local file or S3 object) into a
validated `StateDocument` wrapped in a `BackendResult`.
"""

from .backend import UnsupportedBackendError, new_backend
from .models import STATE_VERSION, BackendKind, BackendResult, StateDocument
from .parser import StateFormatError, StateVersionError, parse_and_validate

__all__ = [
    "BackendKind",
    "BackendResult",
    "STATE_VERSION",
    "StateDocument",
    "StateFormatError",
    "StateVersionError",
    "UnsupportedBackendError",
    "new_backend",
    "parse_and_validate",
]
