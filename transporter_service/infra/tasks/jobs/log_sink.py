"""Per-job output log files.

Each job writes to ``<output_log_directory>/<job id>.log``. Readers tail the
file by remembering the offset they read up to; no locking is done, the
running job is the only writer.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LogSink:
    """Append-only log file belonging to one job.

    Example:
        sink = LogSink(settings.output_log_directory, job.id)
        chunk = sink.read(offset)
        offset += len(chunk)
    """

    def __init__(self, directory: Path | str, job_id: int | None) -> None:
        self.directory = Path(directory)
        self.job_id = job_id

    @property
    def path(self) -> Path | None:
        """Log location, or None until the job has an id."""
        if self.job_id is None:
            return None
        return self.directory / f"{self.job_id}.log"

    def has_output(self) -> bool:
        path = self.path
        if path is None:
            return False
        try:
            return path.stat().st_size > 0
        except FileNotFoundError:
            return False

    def size(self) -> int:
        path = self.path
        if path is None:
            return 0
        try:
            return path.stat().st_size
        except FileNotFoundError:
            return 0

    def read(self, offset: int = 0) -> bytes:
        """Read from ``offset`` to end of file; empty if there is no file."""
        path = self.path
        if path is None:
            return b""
        try:
            with path.open("rb") as fh:
                fh.seek(max(int(offset), 0))
                return fh.read()
        except FileNotFoundError:
            return b""

    def remove(self) -> None:
        """Delete the file if it exists."""
        path = self.path
        if path is None:
            return
        path.unlink(missing_ok=True)
        logger.debug("Removed job log", extra={"job_id": self.job_id, "path": str(path)})


__all__ = ["LogSink"]
