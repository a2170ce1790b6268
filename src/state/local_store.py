from __future__ import annotations

import logging

from common.backend_config import BackendConfigBlock, LocalBackendConfig, decode_config
from common.errors import BackendError

from .models import BackendKind, BackendResult, StateDocument
from .parser import parse_and_validate

logger = logging.getLogger(__name__)


class ResourceUnavailableError(BackendError):
    """The local state file could not be opened."""

    def __init__(self, path: str) -> None:
        super().__init__(f"failed to read tfstate from {path}")
        self.path = path


class LocalStateStore:
    """Reads a state file from the local filesystem; the path is used as given."""

    def __init__(self, *, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def read(self) -> StateDocument:
        try:
            f = open(self._path, "rb")
        except (OSError, ValueError) as ex:  # ValueError: embedded null byte
            raise ResourceUnavailableError(self._path) from ex
        with f:
            return parse_and_validate(f)


def new_local_backend(block: BackendConfigBlock) -> BackendResult:
    cfg = decode_config(block, LocalBackendConfig)
    logger.debug("Reading local state for backend %s from %s", block.name, cfg.path)
    document = LocalStateStore(path=cfg.path).read()
    return BackendResult(kind=BackendKind.LOCAL, name=block.name, document=document)
