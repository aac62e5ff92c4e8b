"""DependencyResolver: walk the Vite manifest graph from an entry key.

Traversal rules (depth-first, in manifest order):
  - Every key is processed at most once per resolver instance.  The
    visited set also makes the walk terminate on import cycles.
  - ``imports`` inherit the importer's mode: eager under an eager importer,
    preload-only under a preload-only one.
  - ``dynamicImports`` are always preload-only.
  - Eager keys get a module script plus one stylesheet per ``css`` item.
  - Every visited key, eager or not, gets one ``modulepreload`` entry.
  - With preloading disabled, preload-only keys are skipped entirely.

Handles are derived from :func:`short_hash` of the manifest key, so the
same key maps to the same handle on every pass.
"""

import hashlib

import structlog

from app.errors import DanglingDependency, ManifestMalformed
from app.models.vite_manifest import ManifestEntry, ViteManifest
from models.plan import EnqueuePlan, ScriptRegistration, StyleRegistration

_log = structlog.get_logger("resolvers.dependencies")


def short_hash(text: str) -> str:
    """First 8 hex chars of the SHA-1 of *text*."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:8]


def preload_link_markup(url: str) -> str:
    return f'<link rel="modulepreload" href="{url}" />'


class DependencyResolver:
    """Build an :class:`~models.plan.EnqueuePlan` for one or more entry points.

    One instance owns one visited set.  Share an instance across entries on
    the same page to de-duplicate between them; use separate instances to
    resolve entries independently.

    Args:
        dist_url: URL prefix the built files are served from.
        handle_prefix: Prefix for every registration handle.
        preload_enabled: When False, dynamic-only chunks are neither
            registered nor recorded.
    """

    def __init__(
        self,
        dist_url: str,
        handle_prefix: str,
        preload_enabled: bool = True,
    ) -> None:
        self.dist_url = dist_url
        self.handle_prefix = handle_prefix
        self.preload_enabled = preload_enabled
        self._visited: set[str] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, manifest: ViteManifest, entry_key: str) -> EnqueuePlan:
        """Walk *manifest* from *entry_key* and return what this walk added.

        Keys already visited by an earlier call on this instance contribute
        nothing to the returned plan.

        Raises:
            ManifestMalformed: *entry_key* is not a top-level manifest key.
            DanglingDependency: An import points at a key with no entry.
        """
        if entry_key not in manifest:
            raise ManifestMalformed(
                f"ERROR: entry point {entry_key!r} not found in manifest"
            )
        plan = EnqueuePlan()
        self._visit(manifest, entry_key, plan, preload_only=False, referenced_by=None)
        return plan

    def script_handle(self, key: str) -> str:
        return f"{self.handle_prefix}_{short_hash(key)}_js"

    def style_handle(self, key: str, index: int) -> str:
        return f"{self.handle_prefix}_{short_hash(key)}_css_{index}"

    def url_for(self, file: str) -> str:
        return self.dist_url + file

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _lookup(self, manifest: ViteManifest, key: str, referenced_by: str | None) -> ManifestEntry:
        try:
            return manifest[key]
        except KeyError:
            _log.error("dependency_missing", key=key, referenced_by=referenced_by)
            raise DanglingDependency(key, referenced_by or "<entry>") from None

    def _visit(
        self,
        manifest: ViteManifest,
        key: str,
        plan: EnqueuePlan,
        preload_only: bool,
        referenced_by: str | None,
    ) -> None:
        # Explicit stack so deep import chains do not hit the recursion limit.
        # Children are pushed in reverse so they pop in manifest order, with
        # static imports ahead of dynamic ones.
        stack: list[tuple[str, bool, str | None]] = [(key, preload_only, referenced_by)]
        while stack:
            key, preload_only, referenced_by = stack.pop()
            if key in self._visited:
                continue
            if preload_only and not self.preload_enabled:
                continue

            entry = self._lookup(manifest, key, referenced_by)
            self._visited.add(key)
            url = self.url_for(entry.file)

            if key not in plan.preloads:
                plan.preloads[key] = preload_link_markup(url)

            if not preload_only:
                plan.scripts.append(ScriptRegistration(handle=self.script_handle(key), url=url))
                for index, css in enumerate(entry.css):
                    plan.styles.append(
                        StyleRegistration(handle=self.style_handle(key, index), url=self.url_for(css))
                    )

            for child in reversed(entry.dynamic_imports):
                stack.append((child, True, key))
            for child in reversed(entry.imports):
                stack.append((child, preload_only, key))
