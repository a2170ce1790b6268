from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


# Terraform state file format version this package understands
STATE_VERSION = 4


class StateDocument(BaseModel):
    """
    A Terraform state file that passed the version check.

    Fields
    - version: state format version; always equal to `STATE_VERSION` once validated.
    - state: the full decoded JSON object, passed through untouched
      (terraform_version, serial, lineage, outputs, resources, ...).
    """

    model_config = ConfigDict(frozen=True)

    version: int
    state: Dict[str, Any] = Field(default_factory=dict, description="Decoded state file contents")


class BackendKind(str, Enum):
    LOCAL = "local"
    S3 = "s3"


class BackendResult(BaseModel):
    """Outcome of resolving one backend declaration."""

    model_config = ConfigDict(frozen=True)

    kind: BackendKind
    name: str
    document: StateDocument
