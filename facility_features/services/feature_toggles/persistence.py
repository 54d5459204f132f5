"""Snapshot files: the only durability boundary for feature configuration.

Snapshots are plain JSON written atomically (temp file + rename) under an
advisory ``fcntl`` lock so concurrent workers never observe a torn file.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional, Union

from .errors import SnapshotError

if TYPE_CHECKING:
    from .analysis import FeatureAnalysisReporter
    from .events import ConfigChange

try:  # pragma: no cover - Windows fallback
    import fcntl
except ImportError:  # pragma: no cover
    fcntl = None

logger = logging.getLogger(__name__)

PathType = Union[str, "os.PathLike[str]"]


@contextlib.contextmanager
def _snapshot_lock(path: Path, exclusive: bool) -> Iterator[None]:
    if fcntl is None:
        yield
        return

    lock_path = path.with_suffix(path.suffix + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def read_snapshot_file(path: PathType) -> Optional[Dict[str, Any]]:
    """Return the snapshot stored at *path*, or None when the file does not exist."""
    file_path = Path(path)
    if not file_path.exists():
        return None

    with _snapshot_lock(file_path, exclusive=False):
        try:
            with file_path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"Snapshot file {file_path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot file {file_path} does not contain an object")
    return data


def write_snapshot_file(path: PathType, data: Dict[str, Any], *, indent: int = 2) -> None:
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with _snapshot_lock(file_path, exclusive=True):
        fd, tmp_name = tempfile.mkstemp(
            dir=str(file_path.parent), prefix=f".{file_path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp, indent=indent, sort_keys=True)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, file_path)
        finally:
            if tmp_path.exists():
                with contextlib.suppress(FileNotFoundError):
                    tmp_path.unlink()


class SnapshotAutosaveListener:
    """Change listener that rewrites the snapshot file after each commit."""

    def __init__(self, reporter: "FeatureAnalysisReporter", path: PathType):
        self.reporter = reporter
        self.path = Path(path)
        self._lock = threading.Lock()

    def __call__(self, change: "ConfigChange") -> None:
        # Export and write as one step; otherwise an older export can land last.
        with self._lock:
            write_snapshot_file(self.path, self.reporter.export_snapshot())
        logger.debug("Feature snapshot saved to %s after %s on %s", self.path, change.action, change.scope)

    def __repr__(self) -> str:
        return f"<SnapshotAutosaveListener {self.path}>"
