"""Construction-time configuration for :class:`app.script_set.ScriptSet`.

Each setting follows the same priority chain:
  1. Explicit keyword argument
  2. Environment variable (``VITE_ASSETS_*``)
  3. Built-in default
"""

import os

from pydantic import BaseModel

_ENV_PREFIX = "VITE_ASSETS_"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> bool | None:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return None
    return raw.strip().lower() in _TRUTHY


class ScriptSetConfig(BaseModel):
    """Settings consumed by the orchestrator."""

    code_dir: str
    """Directory holding ``dist/.vite/manifest.json`` and the liveness marker."""

    dist_url: str
    """URL the built ``dist/`` files are served at, with trailing slash."""

    entry_point: str
    """Manifest key of the entry to enqueue, e.g. ``src/main.tsx``."""

    dev_mode: bool = False
    react: bool = False
    preload: bool = True

    base_url: str = "/"
    """Path prefix on the dev server; override when assets live in a sub-directory."""

    @classmethod
    def from_env(cls, **overrides: object) -> "ScriptSetConfig":
        """Build a config from *overrides*, falling back to ``VITE_ASSETS_*`` env vars."""
        values: dict[str, object] = {}
        for field, env_name in (
            ("code_dir", "CODE_DIR"),
            ("dist_url", "DIST_URL"),
            ("entry_point", "ENTRY_POINT"),
            ("base_url", "BASE_URL"),
        ):
            value = overrides.get(field)
            if value is None:
                value = os.environ.get(_ENV_PREFIX + env_name)
            if value is not None:
                values[field] = value

        for field, env_name in (
            ("dev_mode", "DEV_MODE"),
            ("react", "REACT"),
            ("preload", "PRELOAD"),
        ):
            value = overrides.get(field)
            if value is None:
                value = _env_flag(env_name)
            if value is not None:
                values[field] = value

        return cls(**values)
