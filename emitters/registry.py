"""Host asset-registration capability.

The host page pipeline owns the real registration mechanism; this module
only describes it.  :class:`InMemoryRegistry` records registrations in
order and is what the CLI prints from.
"""

from typing import Protocol

from models.plan import ScriptRegistration, StyleRegistration


class AssetRegistry(Protocol):
    """Registration calls are idempotent per handle within one page render."""

    def register_module_script(self, handle: str, url: str, deferred: bool = True) -> None: ...

    def register_stylesheet(self, handle: str, url: str) -> None: ...


class InMemoryRegistry:
    """Ordered registry; a repeated handle keeps its first registration."""

    def __init__(self) -> None:
        self.scripts: dict[str, ScriptRegistration] = {}
        self.styles: dict[str, StyleRegistration] = {}

    def register_module_script(self, handle: str, url: str, deferred: bool = True) -> None:
        if handle not in self.scripts:
            self.scripts[handle] = ScriptRegistration(handle=handle, url=url, deferred=deferred)

    def register_stylesheet(self, handle: str, url: str) -> None:
        if handle not in self.styles:
            self.styles[handle] = StyleRegistration(handle=handle, url=url)
