from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    # Index lives under <root>/<index_dir>/<db_name>.
    index_dir: str = os.getenv("NODI_INDEX_DIR", ".nodi")
    db_name: str = os.getenv("NODI_DB_NAME", "index.sqlite")

    # Documents
    extension: str = os.getenv("NODI_EXTENSION", ".md")
    encoding: str = os.getenv("NODI_ENCODING", "utf-8")

    # Scanner
    chunk_size: int = int(os.getenv("NODI_CHUNK_SIZE", "8192"))
    hash_name: str = os.getenv("NODI_HASH", "md5")
    strict_references: bool = _env_flag("NODI_STRICT_REFERENCES")

    def db_path_for(self, root: str | os.PathLike[str]) -> Path:
        return Path(root) / self.index_dir / self.db_name
