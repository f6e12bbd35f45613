"""Host-side storage for per-monitor ``TargetState``.

The debounce logic never touches storage; a ``Monitor`` loads the state
before a cycle and saves the new state after it.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from reachwatch.monitor.models import TargetState

logger = logging.getLogger(__name__)


class StateStore:
    """Interface for per-monitor state storage, keyed by monitor id."""

    def load(self, key: str) -> Optional[TargetState]:
        raise NotImplementedError

    def save(self, key: str, state: TargetState) -> None:
        raise NotImplementedError


class MemoryStateStore(StateStore):
    """State kept for the lifetime of the process."""

    def __init__(self):
        self._states: Dict[str, TargetState] = {}

    def load(self, key: str) -> Optional[TargetState]:
        return self._states.get(key)

    def save(self, key: str, state: TargetState) -> None:
        self._states[key] = state


class FileStateStore(StateStore):
    """State kept in a JSON file so it survives restarts.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write never leaves a truncated file behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as e:
            logger.warning("State file %s is corrupt, starting without baseline: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("State file %s has unexpected content, ignoring it", self.path)
            return {}
        return data

    def load(self, key: str) -> Optional[TargetState]:
        entry = self._read_all().get(key)
        if entry is None:
            return None
        return TargetState.from_dict(entry)

    def save(self, key: str, state: TargetState) -> None:
        data = self._read_all()
        data[key] = state.to_dict()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise
        logger.debug("Saved state for %s: %s", key, data[key])
