from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class ResourceJanitor:
    """Owns the temp files of one job and removes them exactly once.

    ``cleanup_once`` may be reached from several places (error branch,
    end of stream, stream failure). Only the first call deletes anything;
    later and concurrent calls are no-ops. Deletion errors are logged.
    """

    def __init__(self, label: str = "job"):
        self.label = label
        self._lock = threading.Lock()
        self._paths: list[Path] = []
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def tracked_paths(self) -> list[Path]:
        with self._lock:
            return list(self._paths)

    def track(self, path: str | os.PathLike[str] | None) -> None:
        if path is None:
            return
        path = Path(path)
        with self._lock:
            if not self._released:
                if path not in self._paths:
                    self._paths.append(path)
                return
        # Registered after cleanup already ran; nobody else will remove it.
        self._remove(path)

    def cleanup_once(self) -> bool:
        with self._lock:
            if self._released:
                return False
            self._released = True
            paths, self._paths = self._paths, []

        for path in paths:
            self._remove(path)
        return True

    def _remove(self, path: Path) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning(f"Cleanup failed for {self.label} file {path}: {exc}")
            return
        logger.info(f"Cleaned up {self.label} file {path.name}")
