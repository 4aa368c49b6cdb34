"""
commission_config -- single public entrypoint for workflow settings.

Responsibility:
    Provides the one way to obtain settings at runtime:
    ``get_active_settings()``.  Returns a frozen ``CommissionSettings``
    loaded from YAML with PyYAML.

Architecture position:
    Configuration.  Sits above ``commission_kernel`` and
    ``commission_engines`` and below ``commission_modules`` /
    ``commission_services``.  The kernel and the engines never import this
    package; ``commission_config.bridges`` converts settings into engine
    parameter objects.

Invariants enforced:
    - The default file is parsed once per path and cached; callers get the
      same frozen object back.
    - ``COMMISSION_SETTINGS_PATH`` overrides the packaged default.

Failure modes:
    - ``FileNotFoundError`` -- the settings path does not exist.
    - ``ValueError`` / ``KeyError`` -- the file fails schema validation.

Audit relevance:
    Every load emits a ``COMMISSION_CONFIG_TRACE`` log record carrying the
    settings id, version and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from commission_config.loader import load_settings_file
from commission_config.schema import CommissionSettings

_logger = logging.getLogger("commission_kernel.config")

_DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"

_cache: dict[Path, CommissionSettings] = {}


def get_active_settings(path: Path | str | None = None) -> CommissionSettings:
    """
    The public settings entrypoint.

    Args:
        path: Explicit settings file.  Defaults to ``COMMISSION_SETTINGS_PATH``
            when set, else the packaged ``sets/default.yaml``.
    """
    if path is None:
        env_path = os.environ.get("COMMISSION_SETTINGS_PATH")
        path = Path(env_path) if env_path else _DEFAULT_SETTINGS_PATH
    resolved = Path(path).resolve()

    cached = _cache.get(resolved)
    if cached is not None:
        return cached

    settings = load_settings_file(resolved)
    _cache[resolved] = settings

    _logger.info(
        "COMMISSION_CONFIG_TRACE",
        extra={
            "trace_type": "COMMISSION_CONFIG_TRACE",
            "settings_id": settings.settings_id,
            "settings_version": settings.version,
            "checksum": settings.checksum,
            "path": str(resolved),
        },
    )
    return settings


def clear_settings_cache() -> None:
    """Forget cached settings (tests)."""
    _cache.clear()


__all__ = [
    "CommissionSettings",
    "clear_settings_cache",
    "get_active_settings",
]
