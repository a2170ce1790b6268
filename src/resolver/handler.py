from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from common.aws import AwsSessionProvider
from common.backend_config import BackendConfigBlock, ConfigFormat, load_blocks
from state.backend import new_backend
from state.models import BackendResult


ENV_CONFIG_FORMAT = "BACKEND_CONFIG_FORMAT"  # optional; "yaml" or "hcl"
ENV_LOG_LEVEL = "LOG_LEVEL"  # optional; defaults to INFO

logger = logging.getLogger(__name__)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


def _configure_logging() -> None:
    # Leave host-configured logging alone
    if logging.getLogger().handlers:
        return
    level = (_getenv(ENV_LOG_LEVEL, "INFO") or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def resolve_all(
    blocks: Iterable[BackendConfigBlock],
    *,
    provider: Optional[AwsSessionProvider] = None,
) -> List[BackendResult]:
    """Resolve each block in order; the first failure propagates."""
    aws = provider or AwsSessionProvider()
    return [new_backend(block, provider=aws) for block in blocks]


def run_once(text: str, fmt: ConfigFormat | str, *, provider: Optional[AwsSessionProvider] = None) -> Dict[str, Any]:
    blocks = load_blocks(text, fmt)
    results = resolve_all(blocks, provider=provider)
    for r in results:
        logger.info("Resolved backend %s (%s), state version %d", r.name, r.kind.value, r.document.version)
    return {
        "ok": True,
        "backends": [
            {"name": r.name, "kind": r.kind.value, "version": r.document.version}
            for r in results
        ],
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    _configure_logging()
    text = _require(event.get("config"), "config")
    fmt = event.get("format") or _getenv(ENV_CONFIG_FORMAT, ConfigFormat.YAML.value)
    return run_once(text, fmt)
