"""Unit tests for the ScriptSet orchestrator.

Covers:
  1. Mode selection: dev only when dev mode is on and the marker is fresh.
  2. Dev path: two dev-server scripts and the React preamble.
  3. Build path: manifest resolution, registrations, preload head markup.
  4. Lifecycle: one enqueue, one head emission, setters before enqueue.
  5. Fatal manifest errors register nothing.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from app.config import ScriptSetConfig
from app.errors import DanglingDependency, ManifestMalformed, ManifestUnavailable, ScriptSetStateError
from app.script_set import ScriptSet, ScriptSetState
from emitters.registry import InMemoryRegistry
from liveness.probe import MARKER_FILENAME, LivenessProbe
from resolvers.dependencies import short_hash
from resolvers.manifest_store import ManifestCache, manifest_path

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
DIST = "/static/dist/"

MANIFEST = {
    "a.js": {"file": "a-x1.js", "css": ["a.css"], "imports": ["b.js"], "dynamicImports": ["c.js"]},
    "b.js": {"file": "b-y2.js"},
    "c.js": {"file": "c-z3.js"},
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_manifest(code_dir: Path, data: dict = MANIFEST) -> None:
    path = manifest_path(code_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def _write_marker(code_dir: Path, age_seconds: int = 0, port: int = 5173) -> None:
    last = (NOW - timedelta(seconds=age_seconds)).strftime("%Y-%m-%dT%H:%M:%SZ")
    (code_dir / MARKER_FILENAME).write_text(
        json.dumps({"serverPort": port, "lastUpdated": last}), encoding="utf-8"
    )


def _script_set(code_dir: Path, registry: InMemoryRegistry, entry: str = "a.js", **kwargs) -> ScriptSet:
    return ScriptSet(
        str(code_dir), DIST, entry, registry, probe=LivenessProbe(clock=NOW.timestamp), **kwargs
    )


# ---------------------------------------------------------------------------
# Test 1: Mode selection
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("dev_mode", "marker_age", "expected_dev"),
    [
        (True, 0, True),
        (True, 200, False),
        (True, None, False),
        (False, 0, False),
        (False, None, False),
    ],
)
def test_mode_selection(tmp_path: Path, dev_mode, marker_age, expected_dev) -> None:
    _write_manifest(tmp_path)
    if marker_age is not None:
        _write_marker(tmp_path, age_seconds=marker_age)

    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.set_dev_mode(dev_mode)

    assert scripts.use_dev_server is expected_dev


def test_liveness_checked_once_at_construction(tmp_path: Path) -> None:
    calls = []

    class _Probe(LivenessProbe):
        def probe(self, path):
            calls.append(path)
            return super().probe(path)

    _write_manifest(tmp_path)
    scripts = ScriptSet(str(tmp_path), DIST, "a.js", InMemoryRegistry(), probe=_Probe(clock=NOW.timestamp))
    assert scripts.state is ScriptSetState.LIVENESS_CHECKED

    scripts.set_dev_mode(True)
    scripts.enqueue()

    assert len(calls) == 1
    assert calls[0] == tmp_path / MARKER_FILENAME


# ---------------------------------------------------------------------------
# Test 2: Dev path
# ---------------------------------------------------------------------------


def test_dev_mode_registers_two_dev_server_scripts(tmp_path: Path) -> None:
    _write_marker(tmp_path, port=3000)
    registry = InMemoryRegistry()
    scripts = _script_set(tmp_path, registry)
    scripts.set_dev_mode(True)
    scripts.set_base_url("/theme/")

    scripts.enqueue()

    key = f"vite_{short_hash(str(tmp_path))}"
    assert [(s.handle, s.url) for s in registry.scripts.values()] == [
        (f"{key}_vite_client", "http://localhost:3000/theme/@vite/client"),
        (f"{key}_entrypoint", "http://localhost:3000/theme/a.js"),
    ]
    assert registry.styles == {}
    assert scripts.plan is None


def test_dev_mode_does_not_need_a_manifest(tmp_path: Path) -> None:
    _write_marker(tmp_path)
    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.set_dev_mode(True)

    scripts.enqueue()

    assert scripts.emit_head() == ""


def test_dev_mode_with_react_schedules_preamble(tmp_path: Path) -> None:
    _write_marker(tmp_path)
    heads = []
    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.set_dev_mode(True)
    scripts.set_react(True)

    scripts.enqueue(head_hook=heads.append)

    assert scripts.collect().kind == "react_hmr"
    assert len(heads) == 1
    markup = heads[0]()
    assert "http://localhost:5173/@react-refresh" in markup
    assert f'id="vite_{short_hash(str(tmp_path))}_react_hmr"' in markup
    assert "modulepreload" not in markup


def test_react_without_dev_server_renders_preloads_only(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.set_dev_mode(True)
    scripts.set_react(True)

    scripts.enqueue()
    markup = scripts.emit_head()

    assert "RefreshRuntime" not in markup
    assert markup.count("modulepreload") == 3


# ---------------------------------------------------------------------------
# Test 3: Build path
# ---------------------------------------------------------------------------


def test_build_mode_end_to_end(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    registry = InMemoryRegistry()
    heads = []
    scripts = _script_set(tmp_path, registry)

    scripts.enqueue(head_hook=heads.append)

    assert [s.url for s in registry.scripts.values()] == [DIST + "a-x1.js", DIST + "b-y2.js"]
    assert [s.url for s in registry.styles.values()] == [DIST + "a.css"]
    assert scripts.collect().kind == "preload"
    assert heads[0]().splitlines() == [
        f'<link rel="modulepreload" href="{DIST}a-x1.js" />',
        f'<link rel="modulepreload" href="{DIST}b-y2.js" />',
        f'<link rel="modulepreload" href="{DIST}c-z3.js" />',
    ]
    assert scripts.state is ScriptSetState.EMITTED


def test_build_mode_with_stale_marker(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    _write_marker(tmp_path, age_seconds=200)
    registry = InMemoryRegistry()
    scripts = _script_set(tmp_path, registry)
    scripts.set_dev_mode(True)

    scripts.enqueue()

    assert DIST + "a-x1.js" in [s.url for s in registry.scripts.values()]


def test_preload_disabled_renders_no_markup(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    registry = InMemoryRegistry()
    scripts = _script_set(tmp_path, registry)
    scripts.set_preload(False)

    scripts.enqueue()

    assert scripts.collect().kind == "none"
    assert scripts.emit_head() == ""
    assert "c.js" not in scripts.plan.preloads
    assert len(registry.scripts) == 2


def test_build_mode_uses_manifest_cache(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    cache = ManifestCache()

    for _ in range(2):
        scripts = _script_set(tmp_path, InMemoryRegistry(), store=cache)
        scripts.enqueue()

    assert len(cache) == 1


def test_empty_manifest_cache_is_used_for_later_renders(tmp_path: Path) -> None:
    """A fresh cache has length 0 and must still be the store ScriptSet reads through."""
    _write_manifest(tmp_path)
    cache = ManifestCache()
    assert len(cache) == 0

    first = _script_set(tmp_path, InMemoryRegistry(), store=cache)
    first.enqueue()

    # Rewrite the file with its old mtime: only the cache serves the original plan.
    manifest_file = manifest_path(tmp_path)
    stat = manifest_file.stat()
    manifest_file.write_text(json.dumps({"a.js": {"file": "changed.js"}}), encoding="utf-8")
    os.utime(manifest_file, ns=(stat.st_atime_ns, stat.st_mtime_ns))

    second = _script_set(tmp_path, InMemoryRegistry(), store=cache)
    second.enqueue()

    assert second.plan.script_urls == first.plan.script_urls == [DIST + "a-x1.js", DIST + "b-y2.js"]


def test_from_config(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    _write_marker(tmp_path)
    config = ScriptSetConfig(
        code_dir=str(tmp_path), dist_url=DIST, entry_point="a.js", dev_mode=True, react=True, base_url="/x/"
    )

    scripts = ScriptSet.from_config(config, InMemoryRegistry(), probe=LivenessProbe(clock=NOW.timestamp))

    assert scripts.use_dev_server is True
    assert scripts.react is True
    assert scripts.base_url == "/x/"


# ---------------------------------------------------------------------------
# Test 4: Lifecycle
# ---------------------------------------------------------------------------


def test_enqueue_twice_raises(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.enqueue()

    with pytest.raises(ScriptSetStateError):
        scripts.enqueue()


def test_emit_head_only_once(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.enqueue()
    scripts.emit_head()

    with pytest.raises(ScriptSetStateError):
        scripts.emit_head()


def test_emit_head_before_enqueue_raises(tmp_path: Path) -> None:
    scripts = _script_set(tmp_path, InMemoryRegistry())

    with pytest.raises(ScriptSetStateError):
        scripts.emit_head()
    with pytest.raises(ScriptSetStateError):
        scripts.collect()


def test_setters_rejected_after_enqueue(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    scripts = _script_set(tmp_path, InMemoryRegistry())
    scripts.enqueue()

    with pytest.raises(ScriptSetStateError):
        scripts.set_preload(False)


# ---------------------------------------------------------------------------
# Test 5: Fatal errors
# ---------------------------------------------------------------------------


def test_missing_manifest_aborts(tmp_path: Path) -> None:
    registry = InMemoryRegistry()
    scripts = _script_set(tmp_path, registry)

    with pytest.raises(ManifestUnavailable):
        scripts.enqueue()
    assert registry.scripts == {}


def test_unknown_entry_point_aborts(tmp_path: Path) -> None:
    _write_manifest(tmp_path)
    scripts = _script_set(tmp_path, InMemoryRegistry(), entry="nope.js")

    with pytest.raises(ManifestMalformed):
        scripts.enqueue()


def test_dangling_dependency_registers_nothing(tmp_path: Path) -> None:
    _write_manifest(tmp_path, {"a.js": {"file": "a.js", "imports": ["b.js", "gone.js"]}, "b.js": {"file": "b.js"}})
    registry = InMemoryRegistry()
    scripts = _script_set(tmp_path, registry)

    with pytest.raises(DanglingDependency):
        scripts.enqueue()
    assert registry.scripts == {}
    assert registry.styles == {}
