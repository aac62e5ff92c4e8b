"""AssetEmitter: turn plans into host registrations and head markup.

Registrations happen at enqueue time.  Head markup (``modulepreload``
links or the React refresh preamble) is only collected then, and rendered
later by :meth:`AssetEmitter.render` from a :class:`~models.plan.PendingOutput`.
"""

from emitters.registry import AssetRegistry
from models.plan import DevBootstrap, EnqueuePlan, PendingOutput, ScriptRegistration

VITE_CLIENT_PATH = "@vite/client"
REACT_REFRESH_PATH = "@react-refresh"

_REACT_PREAMBLE = """\
<script type="module" id="{handle}_react_hmr">
  import RefreshRuntime from '{refresh_url}'
  RefreshRuntime.injectIntoGlobalHook(window)
  window.$RefreshReg$ = () => {{}}
  window.$RefreshSig$ = () => (type) => type
  window.__vite_plugin_react_preamble_installed__ = true
</script>"""


def dev_url(dev_server_url: str, base_url: str, path: str) -> str:
    return f"{dev_server_url}{base_url}{path}"


class AssetEmitter:
    """Emit registrations against *registry*."""

    def __init__(self, registry: AssetRegistry) -> None:
        self.registry = registry

    def emit(self, plan: EnqueuePlan) -> None:
        """Register every script then every stylesheet in *plan*, in order."""
        for script in plan.scripts:
            self.registry.register_module_script(script.handle, script.url, deferred=script.deferred)
        for style in plan.styles:
            self.registry.register_stylesheet(style.handle, style.url)

    def emit_dev_bootstrap(self, bootstrap: DevBootstrap) -> None:
        for script in (bootstrap.client_registration, bootstrap.entry_registration):
            self.registry.register_module_script(script.handle, script.url, deferred=script.deferred)

    # ------------------------------------------------------------------
    # Markup
    # ------------------------------------------------------------------

    @staticmethod
    def render_preload_markup(plan: EnqueuePlan) -> str:
        """One ``modulepreload`` link per line, in discovery order."""
        return "\n".join(plan.preloads.values())

    @staticmethod
    def render_dev_bootstrap(
        dev_server_url: str,
        base_url: str,
        entry_key: str,
        handle_prefix: str = "vite",
    ) -> DevBootstrap:
        return DevBootstrap(
            client_registration=ScriptRegistration(
                handle=f"{handle_prefix}_vite_client",
                url=dev_url(dev_server_url, base_url, VITE_CLIENT_PATH),
            ),
            entry_registration=ScriptRegistration(
                handle=f"{handle_prefix}_entrypoint",
                url=dev_url(dev_server_url, base_url, entry_key),
            ),
        )

    @staticmethod
    def render_react_hmr_preamble(dev_server_url: str, base_url: str, handle_key: str) -> str:
        """Bootstrap snippet wiring React Fast Refresh before any module runs."""
        return _REACT_PREAMBLE.format(
            handle=handle_key,
            refresh_url=dev_url(dev_server_url, base_url, REACT_REFRESH_PATH),
        )

    @staticmethod
    def render(pending: PendingOutput) -> str:
        return "\n".join(pending.fragments)
