from __future__ import annotations

import logging
import os

from .db import Database
from .errors import DatabaseSaveError

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class SnapshotManager:
    """
    Writes the full database image to the snapshot file after mutations.

    The image goes to '<path>.tmp' first and is then moved over the snapshot
    with os.replace, so a reader sees either the previous or the new file,
    never a truncated one. The parent directory must already exist.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    def persist(self) -> bool:
        """
        Save the current database image.

        Returns:
            True if a snapshot was written, False if skipped (ephemeral
            configuration or database never initialized).

        Raises:
            DatabaseSaveError: the file could not be written. The in-memory
            state is left as is.
        """
        path = self._db.path
        if path is None or not self._db.initialized:
            return False

        with self._db.lock:
            data = self._db.export()
            if data is None:
                return False

            tmp_path = f"{path}.tmp"
            try:
                with open(tmp_path, "wb") as fh:
                    fh.write(data)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_path, path)
            except OSError as exc:
                logger.error("Database save to %s failed: %s", path, exc)
                self._discard(tmp_path)
                raise DatabaseSaveError(exc) from exc

        logger.debug("Wrote database snapshot to %s (%d bytes)", path, len(data))
        return True

    @staticmethod
    def _discard(tmp_path: str) -> None:
        if not os.path.exists(tmp_path):
            return
        try:
            os.remove(tmp_path)
        except OSError as e:
            logger.warning("Failed to remove temp snapshot %s: %s", tmp_path, e)
