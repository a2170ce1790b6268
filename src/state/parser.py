from __future__ import annotations

import json
from typing import IO, Any, Union

from common.errors import BackendError

from .models import STATE_VERSION, StateDocument


class StateFormatError(BackendError):
    """State bytes are not a JSON object with an integer `version`."""


class StateVersionError(BackendError):
    """State decoded fine but its format version is not supported."""

    def __init__(self, version: int) -> None:
        super().__init__(f"unsupported state version {version}")
        self.version = version


def parse_and_validate(reader: Union[IO[bytes], IO[str], Any]) -> StateDocument:
    """Read a state file from `reader` and enforce the supported version.

    Raises:
    - StateFormatError for undecodable data or a missing/non-integer `version`.
    - StateVersionError when `version` != STATE_VERSION.
    """
    data = reader.read()
    try:
        raw = json.loads(data)
    except (ValueError, TypeError) as ex:  # JSONDecodeError, UnicodeDecodeError
        raise StateFormatError("invalid tf state file") from ex

    if not isinstance(raw, dict):
        raise StateFormatError("invalid tf state file")
    version = raw.get("version")
    # bool is an int subclass; JSON true/false is not a version
    if not isinstance(version, int) or isinstance(version, bool):
        raise StateFormatError("invalid tf state file")

    if version != STATE_VERSION:
        raise StateVersionError(version)
    return StateDocument(version=version, state=raw)
