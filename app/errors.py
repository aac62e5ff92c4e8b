"""Error taxonomy for asset resolution.

Manifest and dependency errors are fatal for the entry point being
resolved: a half-registered bundle renders a broken page with no
diagnostic, so they propagate to the caller.  ``MarkerUnreadable`` never
escapes :mod:`liveness.probe`; an unreadable marker means "no dev server".
"""


class AssetResolutionError(Exception):
    """Base class for every error raised by this package."""


class ManifestUnavailable(AssetResolutionError):
    """The manifest file is missing or cannot be read."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        msg = f"ERROR: manifest unavailable: {path}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ManifestMalformed(AssetResolutionError):
    """The manifest is not valid JSON, has the wrong shape, or lacks the entry point."""


class DanglingDependency(AssetResolutionError):
    """A manifest entry references a key the manifest does not contain."""

    def __init__(self, key: str, referenced_by: str) -> None:
        self.key = key
        self.referenced_by = referenced_by
        super().__init__(
            f"ERROR: manifest key {key!r} referenced by {referenced_by!r} has no entry"
        )


class MarkerUnreadable(AssetResolutionError):
    """The liveness marker exists but cannot be read or parsed."""


class ScriptSetStateError(AssetResolutionError):
    """A ScriptSet method was called out of order."""
