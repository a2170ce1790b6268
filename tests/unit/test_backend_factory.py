from __future__ import annotations

import json

import pytest

from common.backend_config import BackendConfigBlock
from state import backend as backend_mod
from state.backend import UnsupportedBackendError, new_backend
from state.models import STATE_VERSION, BackendKind


def test_local_kind_dispatches_to_local_strategy(tmp_path):
    p = tmp_path / "terraform.tfstate"
    p.write_text(json.dumps({"version": STATE_VERSION}), encoding="utf-8")
    block = BackendConfigBlock(name="dev", kind="local", format="yaml", attrs={"path": str(p)})

    result = new_backend(block)
    assert result.kind is BackendKind.LOCAL
    assert result.name == "dev"
    assert result.document.version == STATE_VERSION


def test_s3_kind_passes_provider_through(monkeypatch):
    seen = {}

    def fake_s3(block, *, provider=None):
        seen["block"] = block
        seen["provider"] = provider
        return "sentinel"

    monkeypatch.setattr(backend_mod, "new_s3_backend", fake_s3)
    block = BackendConfigBlock(name="prod", kind="s3", format="yaml", attrs={"bucket": "b", "key": "k"})
    provider = object()

    assert new_backend(block, provider=provider) == "sentinel"
    assert seen == {"block": block, "provider": provider}


def test_unknown_kind_fails_without_decoding_or_io(monkeypatch):
    def boom(*_a, **_k):
        raise AssertionError("no strategy should run")

    monkeypatch.setattr(backend_mod, "new_local_backend", boom)
    monkeypatch.setattr(backend_mod, "new_s3_backend", boom)

    block = BackendConfigBlock(name="x", kind="unsupported-kind", format="yaml", attrs={"bogus": object()})
    with pytest.raises(UnsupportedBackendError) as ei:
        new_backend(block)
    assert ei.value.kind == "unsupported-kind"
    assert "unsupported-kind" in str(ei.value)


def test_registry_lists_supported_kinds():
    assert set(backend_mod.BACKENDS) == {"local", "s3"}
