import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional
from relaychat.common.utils import now_archive_stamp
from relaychat.errors import ArchiveNotFound, PersistenceError
from relaychat.storage.transcript import TranscriptLog

logger = logging.getLogger(__name__)

ARCHIVE_PREFIX = "messages_"
ARCHIVE_SUFFIX = ".log"
IDENTITY_SEPARATOR = "_"
FALLBACK_IDENTITY = "revived"

class ArchiveManager:
    def __init__(self, transcript: TranscriptLog, archive_dir: Path):
        self.transcript = transcript
        self.archive_dir = Path(archive_dir)

    def _next_archive_path(self) -> Path:
        stem = ARCHIVE_PREFIX + now_archive_stamp()
        path = self.archive_dir / (stem + ARCHIVE_SUFFIX)
        n = 1
        # Two rotations within one second must not overwrite each other.
        while path.exists():
            path = self.archive_dir / f"{stem}_{n}{ARCHIVE_SUFFIX}"
            n += 1
        return path

    def rotate_live_log(self) -> Optional[Path]:
        """Move the live transcript into the archive and start an empty one.

        Returns the archive path, or None when there was no live transcript.
        """
        with self.transcript.lock:
            if not self.transcript.exists():
                return None
            try:
                self.archive_dir.mkdir(parents=True, exist_ok=True)
                archived = self._next_archive_path()
                os.replace(self.transcript.path, archived)
                self.transcript.path.touch()
            except OSError as e:
                logger.error("Error archiving %s: %s", self.transcript.path, e)
                raise PersistenceError(str(e)) from e
        logger.info("Archived live transcript to %s", archived.name)
        return archived

    def list_archives(self) -> List[str]:
        if not self.archive_dir.is_dir():
            return []
        try:
            return sorted(p.name for p in self.archive_dir.iterdir()
                          if p.is_file() and p.name.endswith(ARCHIVE_SUFFIX))
        except OSError as e:
            logger.error("Error listing archives in %s: %s", self.archive_dir, e)
            return []

    def _resolve(self, name: str) -> Path:
        # Confine lookups to the archive directory.
        safe_name = Path(name).name
        if not safe_name or safe_name != name:
            raise ArchiveNotFound(name)
        path = self.archive_dir / safe_name
        if not path.is_file():
            raise ArchiveNotFound(name)
        return path

    def load_archive(self, name: str) -> Iterator[str]:
        """Iterator over the archive's lines; raises ArchiveNotFound up front."""
        path = self._resolve(name)
        return self._iter_lines(path)

    @staticmethod
    def _iter_lines(path: Path) -> Iterator[str]:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                yield line.rstrip("\r\n")

    @staticmethod
    def derive_identity(archive_name: str) -> str:
        prefix, sep, _ = archive_name.partition(IDENTITY_SEPARATOR)
        if sep and prefix:
            return prefix
        return FALLBACK_IDENTITY
