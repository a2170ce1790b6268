from __future__ import annotations

import json

import pytest

from common.backend_config import BackendConfigBlock, ConfigDecodeError
from state.local_store import LocalStateStore, ResourceUnavailableError, new_local_backend
from state.models import STATE_VERSION, BackendKind
from state.parser import StateFormatError, StateVersionError


def _write_state(path, version: int = STATE_VERSION) -> None:
    path.write_text(json.dumps({"version": version, "serial": 1, "resources": []}), encoding="utf-8")


def _block(attrs, fmt: str = "yaml") -> BackendConfigBlock:
    return BackendConfigBlock(name="dev", kind="local", format=fmt, attrs=attrs)


@pytest.mark.parametrize("fmt", ["yaml", "hcl"])
def test_resolves_existing_state_file(tmp_path, fmt):
    p = tmp_path / "terraform.tfstate"
    _write_state(p)

    result = new_local_backend(_block({"path": str(p)}, fmt))
    assert result.kind is BackendKind.LOCAL
    assert result.name == "dev"
    assert result.document.version == STATE_VERSION
    assert result.document.state["serial"] == 1


def test_missing_file_names_the_path(tmp_path):
    p = tmp_path / "nope.tfstate"
    with pytest.raises(ResourceUnavailableError) as ei:
        new_local_backend(_block({"path": str(p)}))
    assert ei.value.path == str(p)
    assert str(p) in str(ei.value)


def test_directory_path_is_unavailable(tmp_path):
    with pytest.raises(ResourceUnavailableError):
        LocalStateStore(path=str(tmp_path)).read()


def test_missing_path_fails_before_touching_filesystem(monkeypatch):
    import builtins

    def boom(*_a, **_k):
        raise AssertionError("filesystem should not be touched")

    monkeypatch.setattr(builtins, "open", boom)
    with pytest.raises(ConfigDecodeError):
        new_local_backend(_block({}))


def test_parser_errors_propagate_unchanged(tmp_path):
    bad = tmp_path / "bad.tfstate"
    bad.write_bytes(b"{not json")
    with pytest.raises(StateFormatError):
        new_local_backend(_block({"path": str(bad)}))

    old = tmp_path / "old.tfstate"
    _write_state(old, version=3)
    with pytest.raises(StateVersionError):
        new_local_backend(_block({"path": str(old)}))


def test_file_handle_closed_on_parse_failure(tmp_path, monkeypatch):
    import builtins

    opened = []
    real_open = builtins.open

    def tracking_open(*args, **kwargs):
        f = real_open(*args, **kwargs)
        opened.append(f)
        return f

    bad = tmp_path / "bad.tfstate"
    bad.write_bytes(b"garbage")
    monkeypatch.setattr(builtins, "open", tracking_open)
    with pytest.raises(StateFormatError):
        LocalStateStore(path=str(bad)).read()
    monkeypatch.undo()

    assert len(opened) == 1
    assert opened[0].closed


def test_path_with_null_byte_is_unavailable():
    with pytest.raises(ResourceUnavailableError) as ei:
        new_local_backend(_block({"path": "a\x00b"}))
    assert ei.value.path == "a\x00b"
