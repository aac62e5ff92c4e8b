"""Typed models for the Vite build manifest (``dist/.vite/manifest.json``).

Only the fields the dependency walk reads are modelled; everything else Vite
writes (``src``, ``isEntry``, ``assets`` ...) is ignored.
"""

from pydantic import BaseModel, ConfigDict, Field, RootModel


class ManifestEntry(BaseModel):
    """One emitted chunk, keyed in the manifest by its source module path."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    file:            str
    css:             list[str] = []
    imports:         list[str] = []
    dynamic_imports: list[str] = Field(default_factory=list, alias="dynamicImports")


class ViteManifest(RootModel[dict[str, ManifestEntry]]):
    """Mapping of manifest key → :class:`ManifestEntry`."""

    model_config = ConfigDict(frozen=True)

    def __contains__(self, key: str) -> bool:
        return key in self.root

    def __getitem__(self, key: str) -> ManifestEntry:
        return self.root[key]

    def keys(self) -> list[str]:
        return list(self.root)
