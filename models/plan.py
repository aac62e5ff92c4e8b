"""Pydantic models for the enqueue plan produced by the dependency resolver.

A plan is scoped to one page render: it is built during enqueue, emitted
against the host registry, and discarded.
"""

from typing import Literal

from pydantic import BaseModel, Field


class ScriptRegistration(BaseModel):
    """A module script to register with the host."""

    handle: str
    url: str
    deferred: bool = True


class StyleRegistration(BaseModel):
    """A stylesheet to register with the host."""

    handle: str
    url: str


class EnqueuePlan(BaseModel):
    """Ordered, de-duplicated output of one dependency walk."""

    scripts: list[ScriptRegistration] = Field(default_factory=list)
    styles: list[StyleRegistration] = Field(default_factory=list)

    preloads: dict[str, str] = Field(default_factory=dict)
    """manifest key → ``modulepreload`` markup, in discovery order."""

    @property
    def script_urls(self) -> list[str]:
        return [s.url for s in self.scripts]

    @property
    def style_urls(self) -> list[str]:
        return [s.url for s in self.styles]


class DevBootstrap(BaseModel):
    """The two module scripts served straight from the dev server."""

    client_registration: ScriptRegistration
    entry_registration: ScriptRegistration


class PendingOutput(BaseModel):
    """Head markup collected at enqueue time and rendered later, once."""

    kind: Literal["preload", "react_hmr", "none"] = "none"
    fragments: list[str] = Field(default_factory=list)
