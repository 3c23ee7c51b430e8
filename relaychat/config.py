import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

MEDIA_PORT = 50005

ADMIN_FILE = "admin.json"
AUTH_FILE = "auth.json"
CHAT_LOG = "current_chat.log"
ARCHIVE_DIR = "archive"

@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    media_port: int = MEDIA_PORT
    data_dir: Path = Path(".")
    fallback_admin_id: str = "admin"
    fallback_admin_password: str = "admin123"
    hash_iterations: int = 200_000
    log_level: str = "INFO"

    @property
    def admin_file(self) -> Path:
        return self.data_dir / ADMIN_FILE

    @property
    def auth_file(self) -> Path:
        return self.data_dir / AUTH_FILE

    @property
    def chat_log(self) -> Path:
        return self.data_dir / CHAT_LOG

    @property
    def archive_dir(self) -> Path:
        return self.data_dir / ARCHIVE_DIR

    @classmethod
    def from_env(cls) -> "ServerConfig":
        load_dotenv()
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            data_dir=Path(os.getenv("DATA_DIR", ".")),
            # Always valid alongside admin.json; see DESIGN.md.
            fallback_admin_id=os.getenv("ADMIN_FALLBACK_ID", "admin"),
            fallback_admin_password=os.getenv("ADMIN_FALLBACK_PASSWORD", "admin123"),
            hash_iterations=int(os.getenv("HASH_ITERATIONS", "200000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
