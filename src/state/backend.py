from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from common.aws import AwsSessionProvider
from common.backend_config import BackendConfigBlock
from common.errors import BackendError

from .local_store import new_local_backend
from .models import BackendKind, BackendResult
from .s3_store import new_s3_backend

logger = logging.getLogger(__name__)


class UnsupportedBackendError(BackendError):
    """No strategy is registered for the requested backend type."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"unsupported backend {kind!r}")
        self.kind = kind


BackendFactory = Callable[[BackendConfigBlock, Optional[AwsSessionProvider]], BackendResult]

BACKENDS: Dict[str, BackendFactory] = {
    BackendKind.LOCAL.value: lambda block, _provider: new_local_backend(block),
    BackendKind.S3.value: lambda block, provider: new_s3_backend(block, provider=provider),
}


def new_backend(block: BackendConfigBlock, *, provider: Optional[AwsSessionProvider] = None) -> BackendResult:
    """Dispatch `block` to the strategy for its backend type.

    `provider` is only consulted by remote backends.
    """
    factory = BACKENDS.get(block.kind)
    if factory is None:
        raise UnsupportedBackendError(block.kind)
    logger.debug("Resolving backend %s (type %s)", block.name, block.kind)
    return factory(block, provider)
