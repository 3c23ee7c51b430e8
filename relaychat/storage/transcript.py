import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from relaychat.common.utils import now_log_stamp

logger = logging.getLogger(__name__)

@dataclass
class TranscriptLine:
    identity: str
    message: str
    timestamp: str = field(default_factory=now_log_stamp)

    def render(self) -> str:
        return f"[{self.timestamp}] {self.identity}: {self.message}"

class TranscriptLog:
    """The live, append-only chat log.

    ``lock`` is shared with ArchiveManager so that rotation (rename, recreate)
    never interleaves with an append.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lock = threading.RLock()

    def append(self, line: TranscriptLine) -> bool:
        with self.lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line.render() + "\n")
                return True
            except OSError as e:
                logger.error("Error logging message to %s: %s", self.path, e)
                return False

    def exists(self) -> bool:
        return self.path.exists()
