"""
Basic settings and logging configuration for the tank gauging application.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from tankgauge_app.config.limits import HISTORY_KEY_PREFIX


def _get_resource_root() -> Path:

    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS)
    return Path(__file__).resolve().parents[2]


def _get_user_data_dir(resource_root: Path) -> Path:

    if getattr(sys, "frozen", False):
        exe_path = Path(getattr(sys, "executable", resource_root))
        return exe_path.parent / "tankgauge_data"
    return resource_root / "tankgauge_data"


@dataclass(slots=True)
class Settings:
    """Application-level settings."""

    project_root: Path
    data_dir: Path
    db_path: Path
    history_key_prefix: str = HISTORY_KEY_PREFIX

    @classmethod
    def default(cls, db_path: Path | None = None) -> "Settings":
        resource_root = _get_resource_root()
        data_dir = _get_user_data_dir(resource_root)
        data_dir.mkdir(exist_ok=True)

        if db_path is None:
            db_path = data_dir / "tankgauge.db"

        return cls(project_root=resource_root, data_dir=data_dir, db_path=db_path)


def init_logging(settings: Settings, level: int = logging.INFO) -> None:
    """Configure logging to the data-directory log file and stderr."""
    log_file = settings.data_dir / "tankgauge.log"

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stderr),
        ],
    )

    logging.getLogger(__name__).info("Logging initialized. DB at %s", settings.db_path)
