"""ScriptSet: enqueue one Vite entry point for one page render.

Lifecycle::

    UNINITIALIZED → LIVENESS_CHECKED → (DEV | BUILD) → ENQUEUED → EMITTED

The liveness probe runs once, in the constructor.  Dev mode is selected
only when the caller enabled it *and* the marker is fresh; every other
combination falls back to the built manifest.

Usage::

    scripts = ScriptSet("src", "/static/dist/", "src/main.tsx", registry)
    scripts.set_dev_mode(settings.DEBUG)
    scripts.enqueue(head_hook=page.on_head)
    # ... later, the page calls the hook's render function exactly once.
"""

from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from app.config import ScriptSetConfig
from app.errors import ScriptSetStateError
from emitters.asset_emitter import AssetEmitter
from emitters.registry import AssetRegistry
from liveness.probe import LivenessProbe, marker_path
from models.liveness import LivenessState
from models.plan import EnqueuePlan, PendingOutput
from resolvers.dependencies import DependencyResolver, short_hash
from resolvers.manifest_store import ManifestCache, ManifestStore, manifest_path

HeadHook = Callable[[Callable[[], str]], None]


class ScriptSetState(str, Enum):
    UNINITIALIZED    = "uninitialized"
    LIVENESS_CHECKED = "liveness_checked"
    DEV              = "dev"
    BUILD            = "build"
    ENQUEUED         = "enqueued"
    EMITTED          = "emitted"


class ScriptSet:
    """Orchestrate liveness, manifest loading, resolution and emission.

    Args:
        code_dir: Directory containing ``dist/.vite/manifest.json`` and the
            liveness marker, e.g. ``"src"``.
        dist_url: URL the built assets are served at, with trailing slash.
        entry_point: Manifest key to enqueue, e.g. ``"src/index.js"``.
        registry: Host asset-registration capability.
        probe: Liveness probe; injectable for tests.
        store: Manifest loader; a :class:`ManifestCache` may be passed to
            reuse parsed manifests across renders.
    """

    def __init__(
        self,
        code_dir: str,
        dist_url: str,
        entry_point: str,
        registry: AssetRegistry,
        probe: LivenessProbe | None = None,
        store: "ManifestStore | ManifestCache | None" = None,
    ) -> None:
        self.state = ScriptSetState.UNINITIALIZED
        self.code_dir = code_dir
        self.dist_url = dist_url
        self.entry_point = entry_point
        self.key = f"vite_{short_hash(code_dir)}"

        self.dev_mode = False
        self.react = False
        self.preload_enabled = True
        self.base_url = "/"

        self._emitter = AssetEmitter(registry)
        self._store = store if store is not None else ManifestStore()
        self._pending = PendingOutput()
        self.plan: EnqueuePlan | None = None
        self._log = structlog.get_logger("app.script_set").bind(
            entry_point=entry_point, code_dir=code_dir
        )

        probe = probe if probe is not None else LivenessProbe()
        self.liveness: LivenessState = probe.probe(marker_path(code_dir))
        self.state = ScriptSetState.LIVENESS_CHECKED

    @classmethod
    def from_config(
        cls,
        config: ScriptSetConfig,
        registry: AssetRegistry,
        probe: LivenessProbe | None = None,
        store: "ManifestStore | ManifestCache | None" = None,
    ) -> "ScriptSet":
        scripts = cls(
            config.code_dir,
            config.dist_url,
            config.entry_point,
            registry,
            probe=probe,
            store=store,
        )
        scripts.set_dev_mode(config.dev_mode)
        scripts.set_react(config.react)
        scripts.set_preload(config.preload)
        scripts.set_base_url(config.base_url)
        return scripts

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_dev_mode(self, enabled: bool) -> None:
        """Serve from the dev server when one is running."""
        self._require(ScriptSetState.LIVENESS_CHECKED)
        self.dev_mode = enabled

    def set_react(self, enabled: bool) -> None:
        """Inject the React Fast Refresh preamble in dev mode."""
        self._require(ScriptSetState.LIVENESS_CHECKED)
        self.react = enabled

    def set_preload(self, enabled: bool) -> None:
        self._require(ScriptSetState.LIVENESS_CHECKED)
        self.preload_enabled = enabled

    def set_base_url(self, url: str) -> None:
        """Dev-server path prefix, for assets served from a sub-directory."""
        self._require(ScriptSetState.LIVENESS_CHECKED)
        self.base_url = url

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def use_dev_server(self) -> bool:
        return self.dev_mode and self.liveness.is_fresh

    def enqueue(self, head_hook: HeadHook | None = None) -> None:
        """Register the entry point's assets and schedule head markup.

        Args:
            head_hook: Called once with :meth:`emit_head`, for the host to
                invoke while building the page head.

        Raises:
            ManifestUnavailable, ManifestMalformed, DanglingDependency:
                Build mode only; nothing is registered when they occur.
        """
        self._require(ScriptSetState.LIVENESS_CHECKED)

        if self.use_dev_server:
            self.state = ScriptSetState.DEV
            self._enqueue_dev()
        else:
            self.state = ScriptSetState.BUILD
            self._enqueue_build()

        self.state = ScriptSetState.ENQUEUED
        if head_hook is not None:
            head_hook(self.emit_head)

    def collect(self) -> PendingOutput:
        """Head markup scheduled by :meth:`enqueue`."""
        if self.state not in (ScriptSetState.ENQUEUED, ScriptSetState.EMITTED):
            raise ScriptSetStateError(
                f"ERROR: collect() called in state {self.state.value}; call enqueue() first"
            )
        return self._pending

    def emit_head(self) -> str:
        """Render the scheduled head markup; valid exactly once."""
        self._require(ScriptSetState.ENQUEUED)
        markup = self._emitter.render(self._pending)
        self.state = ScriptSetState.EMITTED
        return markup

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require(self, expected: ScriptSetState) -> None:
        if self.state is not expected:
            raise ScriptSetStateError(
                f"ERROR: ScriptSet is {self.state.value}, expected {expected.value}"
            )

    def _enqueue_dev(self) -> None:
        server_url = self.liveness.dev_server_url
        self._log.info("dev_mode_selected", dev_server_url=server_url)

        bootstrap = self._emitter.render_dev_bootstrap(
            server_url, self.base_url, self.entry_point, handle_prefix=self.key
        )
        self._emitter.emit_dev_bootstrap(bootstrap)

        if self.react:
            self._pending = PendingOutput(
                kind="react_hmr",
                fragments=[
                    self._emitter.render_react_hmr_preamble(server_url, self.base_url, self.key)
                ],
            )

    def _enqueue_build(self) -> None:
        self._log.info(
            "build_mode_selected",
            dev_mode=self.dev_mode,
            liveness=self.liveness.status.value,
        )
        manifest = self._store.load(manifest_path(Path(self.code_dir)))
        resolver = DependencyResolver(
            self.dist_url, self.key, preload_enabled=self.preload_enabled
        )
        self.plan = resolver.resolve(manifest, self.entry_point)
        self._emitter.emit(self.plan)

        if self.preload_enabled and self.plan.preloads:
            self._pending = PendingOutput(
                kind="preload",
                fragments=list(self.plan.preloads.values()),
            )
