# backend/store/snapshot.py
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class SnapshotStorage:
    """Directory acting as a local key-value namespace of binary blobs.

    Each key maps to one file. Writes go to a temporary file in the same
    directory which then replaces the previous blob, so a reader never sees
    a half-written snapshot.
    """

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.sqlite"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def put(self, key: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path(key))
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Snapshot %s written (%d bytes)", key, len(data))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
