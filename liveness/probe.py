"""Dev-server liveness probe.

The dev tooling writes ``.jolt-marker.tmp`` into the code directory while
the Vite dev server runs and refreshes ``lastUpdated`` periodically.  A
marker whose heartbeat is older than :data:`MARKER_STALE_SECONDS` was left
behind by a server that died without cleaning up.

Behaviour:
  - No marker file                    → ABSENT
  - Unreadable / corrupt marker       → ABSENT (logged, never raised)
  - Missing or unparseable timestamp  → FRESH (an un-timestamped marker is trusted)
  - Heartbeat older than threshold    → STALE
"""

import json
import time
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from app.errors import MarkerUnreadable
from app.utils.logging import get_logger
from models.liveness import LivenessMarker, LivenessState, LivenessStatus

logger = get_logger("liveness.probe")

MARKER_FILENAME = ".jolt-marker.tmp"
MARKER_STALE_SECONDS = 120


def marker_path(code_dir: str | Path) -> Path:
    return Path(code_dir) / MARKER_FILENAME


def _parse_timestamp(value: str | None) -> float | None:
    """Return *value* as epoch seconds, or ``None`` when absent or unparseable.

    Naive timestamps are taken as UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def read_marker(path: Path) -> LivenessMarker | None:
    """Load the marker at *path*; ``None`` when it does not exist.

    Raises:
        MarkerUnreadable: If the file exists but cannot be read or parsed.
    """
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return LivenessMarker.model_validate(data)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
        raise MarkerUnreadable(f"ERROR: unreadable liveness marker {path}: {exc}") from exc


def is_stale(marker: LivenessMarker, now: float | None = None) -> bool:
    marker_time = _parse_timestamp(marker.last_updated)
    if marker_time is None:
        return False
    if now is None:
        now = time.time()
    return now - marker_time > MARKER_STALE_SECONDS


class LivenessProbe:
    """Decide whether a dev server is running for *code_dir*.

    Usage::

        state = LivenessProbe().probe(marker_path("src"))
        if state.is_fresh:
            ...

    Args:
        clock: Zero-argument callable returning epoch seconds.  Defaults to
            :func:`time.time`; tests pass a fixed clock.
    """

    def __init__(self, clock=time.time) -> None:
        self._clock = clock

    def probe(self, path: str | Path) -> LivenessState:
        path = Path(path)
        try:
            marker = read_marker(path)
        except MarkerUnreadable as exc:
            logger.warning("liveness_marker_unreadable", path=str(path), error=str(exc))
            return LivenessState(status=LivenessStatus.ABSENT)

        if marker is None:
            return LivenessState(status=LivenessStatus.ABSENT)

        if is_stale(marker, now=self._clock()):
            logger.info(
                "liveness_marker_stale",
                path=str(path),
                last_updated=marker.last_updated,
                threshold_seconds=MARKER_STALE_SECONDS,
            )
            return LivenessState(status=LivenessStatus.STALE)

        return LivenessState(status=LivenessStatus.FRESH, server_port=marker.server_port)
