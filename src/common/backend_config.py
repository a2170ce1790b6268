from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

import hcl2
import yaml
from lark.exceptions import LarkError
from pydantic import BaseModel, ValidationError

from .errors import BackendError


class ConfigFormat(str, Enum):
    HCL = "hcl"
    YAML = "yaml"


class ConfigDecodeError(BackendError):
    """Backend config payload is malformed or does not fit the target shape."""

    def __init__(self, message: str, *, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind


class LocalBackendConfig(BaseModel):
    path: str


class S3BackendConfig(BaseModel):
    bucket: str
    key: str
    # Empty region means "discover from the bucket"
    region: str = ""
    role_arn: str = ""


BackendConfig = Union[LocalBackendConfig, S3BackendConfig]
_C = TypeVar("_C", LocalBackendConfig, S3BackendConfig)


class BackendConfigBlock:
    """
    One named backend declaration as handed over by the host.

    The payload shape depends on `format`:
    - HCL: a structured body (attribute name -> value) as produced by hcl2.
    - YAML: a flat mapping of the remaining keys of the YAML entry.

    `format` is fixed at construction; the decoder picks its path from it.
    """

    __slots__ = ("_name", "_kind", "_format", "_attrs")

    def __init__(
        self,
        *,
        name: str,
        kind: str,
        format: ConfigFormat,
        attrs: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._name = name
        self._kind = kind
        self._format = ConfigFormat(format)
        self._attrs: Dict[str, Any] = dict(attrs or {})

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def format(self) -> ConfigFormat:
        return self._format

    @property
    def attrs(self) -> Dict[str, Any]:
        return dict(self._attrs)

    def __repr__(self) -> str:
        return f"BackendConfigBlock(name={self._name!r}, kind={self._kind!r}, format={self._format.value!r})"


# -------- Decoding --------
def decode_config(block: BackendConfigBlock, target: Type[_C]) -> _C:
    """Materialize `target` from the block payload using the path its format selects."""
    if block.format is ConfigFormat.HCL:
        return _decode_hcl(block.attrs, target, kind=block.kind)
    if block.format is ConfigFormat.YAML:
        return _decode_yaml(block.attrs, target, kind=block.kind)
    raise AssertionError(f"unhandled config format {block.format!r}")


def _decode_hcl(body: Dict[str, Any], target: Type[_C], *, kind: str) -> _C:
    fields = target.model_fields
    unexpected = sorted(k for k in body if k not in fields)
    if unexpected:
        raise ConfigDecodeError(
            f"cannot parse {kind} backend config: unsupported argument(s) {', '.join(unexpected)}",
            kind=kind,
        )

    values: Dict[str, str] = {}
    for name, info in fields.items():
        if name not in body:
            if info.is_required():
                raise ConfigDecodeError(
                    f"cannot parse {kind} backend config: missing required argument {name!r}",
                    kind=kind,
                )
            continue
        raw = _unquote(body[name])
        if not isinstance(raw, str):
            raise ConfigDecodeError(
                f"cannot parse {kind} backend config: argument {name!r} must be a string",
                kind=kind,
            )
        values[name] = raw
    return target(**values)


def _decode_yaml(attrs: Dict[str, Any], target: Type[_C], *, kind: str) -> _C:
    # Round-trip through YAML so the flat map is read the same way a document would be
    try:
        raw = yaml.safe_load(yaml.safe_dump(attrs))
    except yaml.YAMLError as exc:
        raise ConfigDecodeError(f"cannot parse {kind} backend config: {exc}", kind=kind) from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigDecodeError(f"cannot parse {kind} backend config: expected a mapping", kind=kind)
    try:
        return target.model_validate(raw)
    except ValidationError as ve:
        raise ConfigDecodeError(f"cannot parse {kind} backend config: {ve}", kind=kind) from ve


def encode_yaml_attrs(config: BackendConfig) -> Dict[str, Any]:
    """Flat YAML attribute payload for `config`; unset optional fields are omitted."""
    return yaml.safe_load(yaml.safe_dump(config.model_dump(exclude_defaults=True)))


def _unquote(value: Any) -> Any:
    # Newer hcl2 releases keep the surrounding quotes on string literals
    if isinstance(value, str) and len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


# -------- Block loading --------
def load_blocks(text: str, fmt: ConfigFormat | str) -> List[BackendConfigBlock]:
    """
    Read every backend declaration from a config document.

    YAML: a list of entries (or a mapping with a `backends` list), each with
    `name`, `backend` and the backend's own keys inline.

    HCL: `config "<name>" { backend = "<kind>" ... }` blocks.
    """
    try:
        fmt = ConfigFormat(fmt)
    except ValueError as ex:
        raise ConfigDecodeError(f"unsupported config format {fmt!r}") from ex
    if fmt is ConfigFormat.HCL:
        blocks = _load_hcl_blocks(text)
    else:
        blocks = _load_yaml_blocks(text)

    seen: set[str] = set()
    for b in blocks:
        if b.name in seen:
            raise ConfigDecodeError(f"duplicate backend name {b.name!r}", kind=b.kind)
        seen.add(b.name)
    return blocks


def _load_yaml_blocks(text: str) -> List[BackendConfigBlock]:
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigDecodeError(f"invalid backend config document: {exc}") from exc

    if isinstance(doc, dict) and "backends" in doc:
        doc = doc["backends"]
    if doc is None:
        return []
    if not isinstance(doc, list):
        raise ConfigDecodeError("backend config document must be a list of backends")

    out: List[BackendConfigBlock] = []
    for entry in doc:
        if not isinstance(entry, dict):
            raise ConfigDecodeError("backend entry must be a mapping")
        rest = dict(entry)
        name = rest.pop("name", None)
        kind = rest.pop("backend", None)
        out.append(_make_block(name, kind, ConfigFormat.YAML, rest))
    return out


def _load_hcl_blocks(text: str) -> List[BackendConfigBlock]:
    try:
        doc = hcl2.loads(text)
    except (LarkError, ValueError) as exc:
        raise ConfigDecodeError(f"invalid backend config document: {exc}") from exc

    out: List[BackendConfigBlock] = []
    for labelled in doc.get("config", []):
        for label, body in labelled.items():
            if not isinstance(body, dict):
                raise ConfigDecodeError(f"config block {label!r} must have a body")
            rest = {k: v for k, v in body.items() if not k.startswith("__")}
            kind = _unquote(rest.pop("backend", None))
            out.append(_make_block(_unquote(label), kind, ConfigFormat.HCL, rest))
    return out


def _make_block(name: Any, kind: Any, fmt: ConfigFormat, attrs: Dict[str, Any]) -> BackendConfigBlock:
    if not isinstance(name, str) or not name:
        raise ConfigDecodeError("backend entry is missing a name")
    if not isinstance(kind, str) or not kind:
        raise ConfigDecodeError(f"backend {name!r} is missing its backend type")
    return BackendConfigBlock(name=name, kind=kind, format=fmt, attrs=attrs)


__all__ = [
    "BackendConfig",
    "BackendConfigBlock",
    "ConfigDecodeError",
    "ConfigFormat",
    "LocalBackendConfig",
    "S3BackendConfig",
    "decode_config",
    "encode_yaml_attrs",
    "load_blocks",
]
