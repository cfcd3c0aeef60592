# teamup/config.py
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("TEAMUP_LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n"
)

DEFAULT_DATA_DIR = "./teamup_data"


def _optional_int(raw: str | None) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    value = int(raw)
    if value <= 0:
        raise ValueError(f"TEAMUP_HISTORY_LIMIT must be a positive integer, got {raw!r}")
    return value


@dataclass(frozen=True)
class StorageSettings:
    """
    Process-level storage configuration.

    The remote backend is selected only when BOTH the endpoint url and the
    access key are present; anything else falls back to the local store.
    """
    storage_url: str = ""
    storage_key: str = ""
    data_dir: str = DEFAULT_DATA_DIR
    history_limit: Optional[int] = None

    @property
    def use_remote(self) -> bool:
        return bool(self.storage_url and self.storage_key)

    @classmethod
    def from_env(cls) -> "StorageSettings":
        return cls(
            storage_url=os.getenv("TEAMUP_STORAGE_URL", "").strip(),
            storage_key=os.getenv("TEAMUP_STORAGE_KEY", "").strip(),
            data_dir=os.getenv("TEAMUP_DATA_DIR", DEFAULT_DATA_DIR),
            history_limit=_optional_int(os.getenv("TEAMUP_HISTORY_LIMIT")),
        )
