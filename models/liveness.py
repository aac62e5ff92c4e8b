"""Pydantic models for the dev-server liveness marker.

The marker is written by the dev tooling next to the sources while
``vite`` is running::

    {"serverPort": 5173, "lastUpdated": "2024-05-01T10:00:00Z"}
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LivenessMarker(BaseModel):
    """Parsed contents of the marker file."""

    model_config = ConfigDict(populate_by_name=True)

    server_port: int = Field(alias="serverPort")
    """Port the dev server listens on (always ``localhost``)."""

    last_updated: str | None = Field(default=None, alias="lastUpdated")
    """ISO 8601 timestamp of the last heartbeat; optional."""

    @field_validator("last_updated", mode="before")
    @classmethod
    def _drop_non_string_timestamp(cls, v: object) -> str | None:
        """A non-string heartbeat counts as missing rather than invalidating the marker."""
        return v if isinstance(v, str) else None


class LivenessStatus(str, Enum):
    ABSENT = "absent"
    FRESH  = "fresh"
    STALE  = "stale"


class LivenessState(BaseModel):
    """Outcome of a single liveness probe."""

    status: LivenessStatus
    server_port: int | None = None
    """Only set when ``status`` is FRESH."""

    @property
    def is_fresh(self) -> bool:
        return self.status is LivenessStatus.FRESH

    @property
    def dev_server_url(self) -> str | None:
        if not self.is_fresh:
            return None
        return f"http://localhost:{self.server_port}"
