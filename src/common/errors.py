from __future__ import annotations


class BackendError(RuntimeError):
    """Base error for backend resolution."""
