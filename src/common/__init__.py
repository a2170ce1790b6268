"""
Common utilities for tfstate backend resolution.

Modules:
- backend_config: backend declarations and the YAML/HCL config decoder
- aws: boto3 session/client construction, region discovery, role assumption
- errors: base error type shared by every backend failure
"""

__all__ = [
    "aws",
    "backend_config",
    "errors",
]
