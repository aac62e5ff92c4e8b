"""Load the Vite build manifest for one resolution pass.

The manifest is validated twice before use:
  1. ``jsonschema`` against ``contracts/schemas/ViteManifest.v1.json``
  2. Pydantic (:class:`~app.models.vite_manifest.ViteManifest`)

Each page render loads the file fresh.  :class:`ManifestCache` is the
opt-in, explicitly invalidated cache for hosts that want to skip re-parsing.
"""

import json
from pathlib import Path

import jsonschema
import structlog
from pydantic import ValidationError

from app.errors import ManifestMalformed, ManifestUnavailable
from app.models.vite_manifest import ViteManifest

_CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts" / "schemas"
_SCHEMA = json.loads((_CONTRACTS_DIR / "ViteManifest.v1.json").read_text(encoding="utf-8"))

# Location of the manifest relative to the code directory (Vite >= 5).
MANIFEST_RELPATH = Path("dist") / ".vite" / "manifest.json"

_log = structlog.get_logger("resolvers.manifest_store")


def manifest_path(code_dir: str | Path) -> Path:
    return Path(code_dir) / MANIFEST_RELPATH


class ManifestStore:
    """Parse a manifest file into a :class:`ViteManifest`."""

    def load(self, path: str | Path) -> ViteManifest:
        """Read and validate the manifest at *path*.

        Raises:
            ManifestUnavailable: The file is missing or unreadable.
            ManifestMalformed: The file is not JSON or not manifest-shaped.
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ManifestUnavailable(str(path), type(exc).__name__) from exc

        return self.parse(raw, source=str(path))

    def parse(self, raw: str, source: str = "<string>") -> ViteManifest:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ManifestMalformed(f"ERROR: manifest {source} is not valid JSON: {exc}") from exc

        try:
            jsonschema.validate(instance=data, schema=_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise ManifestMalformed(
                f"ERROR: manifest {source} does not conform to ViteManifest.v1.json: {exc.message}"
            ) from exc

        try:
            manifest = ViteManifest.model_validate(data)
        except ValidationError as exc:
            raise ManifestMalformed(f"ERROR: manifest {source} is malformed: {exc}") from exc

        _log.debug("manifest_loaded", source=source, entries=len(manifest.root))
        return manifest


class ManifestCache:
    """Process-wide manifest cache keyed by resolved path and mtime.

    Holds parsed manifests only; visited sets and preload markup stay with
    the per-render resolver.  Entries are dropped by :meth:`invalidate` or
    replaced when the file's mtime changes.
    """

    def __init__(self, store: ManifestStore | None = None) -> None:
        self._store = store if store is not None else ManifestStore()
        self._entries: dict[str, tuple[int, ViteManifest]] = {}

    def load(self, path: str | Path) -> ViteManifest:
        path = Path(path)
        try:
            mtime = path.stat().st_mtime_ns
        except OSError as exc:
            raise ManifestUnavailable(str(path), type(exc).__name__) from exc

        key = str(path.resolve())
        cached = self._entries.get(key)
        if cached is not None and cached[0] == mtime:
            return cached[1]

        manifest = self._store.load(path)
        self._entries[key] = (mtime, manifest)
        return manifest

    def invalidate(self, path: str | Path | None = None) -> None:
        """Drop the entry for *path*, or every entry when *path* is ``None``."""
        if path is None:
            self._entries.clear()
        else:
            self._entries.pop(str(Path(path).resolve()), None)

    def __len__(self) -> int:
        return len(self._entries)
